"""Flask web application for the matching core."""

import logging
import os
from pathlib import Path

from flask import Flask, current_app, jsonify, request

from config import DATA_DIR, DATABASE_URL, LOG_LEVEL, PROFILES_PATH
from matchcore import MatchCore
from matchcore.errors import (
    MatchCoreError,
    NotFoundError,
    ScoringTimeoutError,
    StorageError,
    ValidationError,
)
from matchcore.services import InMemoryProfileStore, SqlInteractionStore

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.json.sort_keys = False


def build_default_core() -> MatchCore:
    """Build the core from the configured profile fixture and database."""
    profiles_path = Path(PROFILES_PATH)
    if profiles_path.exists():
        profiles = InMemoryProfileStore.from_json(profiles_path)
    else:
        logger.warning("[app] profile fixture not found at %s, starting empty", profiles_path)
        profiles = InMemoryProfileStore()
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return MatchCore.create(profiles, SqlInteractionStore(DATABASE_URL))


def get_core() -> MatchCore:
    """Return the app's core, building the default one on first use."""
    core = current_app.config.get('MATCH_CORE')
    if core is None:
        core = build_default_core()
        current_app.config['MATCH_CORE'] = core
    return core


def error_response(e: Exception):
    """Map core errors onto HTTP responses."""
    if isinstance(e, ValidationError):
        return jsonify({'error': str(e)}), 400
    if isinstance(e, NotFoundError):
        return jsonify({'error': str(e)}), 404
    if isinstance(e, (ScoringTimeoutError, StorageError)):
        return jsonify({'error': str(e), 'retryable': True}), 503
    if isinstance(e, MatchCoreError):
        return jsonify({'error': str(e)}), 500
    logger.exception("[api] unexpected error")
    return jsonify({'error': str(e)}), 500


def int_arg(name: str, default=None):
    """Read an integer query parameter; anything non-integer is a ValidationError."""
    value = request.args.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {value!r}") from None


@app.route('/health')
def health():
    """Liveness check."""
    return jsonify({'status': 'ok'})


@app.route('/api/candidates/<user_id>', methods=['GET'])
def api_get_candidates(user_id):
    """Ranked candidate page for a user."""
    try:
        page_size = int_arg('page_size')
        offset = int_arg('offset', 0)
        candidates = get_core().get_candidates(user_id, page_size, offset)
        return jsonify({
            'success': True,
            'candidates': [
                {
                    'candidate_id': c.candidate_id,
                    'score': c.score,
                    'raw_score': c.raw_score,
                    'position': c.position,
                }
                for c in candidates
            ],
        })
    except Exception as e:
        return error_response(e)


@app.route('/api/swipes', methods=['POST'])
def api_swipe():
    """Record a swipe and report whether it made a match."""
    data = request.get_json(silent=True) or {}

    actor_id = str(data.get('actor_id', '')).strip()
    target_id = str(data.get('target_id', '')).strip()
    action = str(data.get('action', '')).strip()

    if not actor_id or not target_id or not action:
        return jsonify({'error': 'actor_id, target_id and action are required'}), 400

    try:
        result = get_core().swipe(actor_id, target_id, action)
        return jsonify({
            'success': True,
            'is_match': result.is_match,
            'match_id': result.match_id,
        })
    except Exception as e:
        return error_response(e)


@app.route('/api/swipes/<user_id>', methods=['GET'])
def api_list_swipes(user_id):
    """Swipe history of a user, newest first."""
    try:
        swipes = get_core().swipes.list_swipes(user_id)
        return jsonify({'success': True, 'swipes': [s.to_dict() for s in swipes]})
    except Exception as e:
        return error_response(e)


@app.route('/api/likers/<user_id>', methods=['GET'])
def api_list_likers(user_id):
    """People who liked the user and are not matched with them yet."""
    try:
        likes = get_core().swipes.list_likers(user_id)
        return jsonify({
            'success': True,
            'likers': [
                {'user_id': s.actor_id, 'action': s.action.value, 'swiped_at': s.swiped_at.isoformat()}
                for s in likes
            ],
        })
    except Exception as e:
        return error_response(e)


@app.route('/api/matches/<user_id>', methods=['GET'])
def api_list_matches(user_id):
    """Active matches for a user, newest first."""
    try:
        limit = int_arg('limit')
        offset = int_arg('offset', 0)
        matches = get_core().swipes.list_matches(user_id, limit=limit, offset=offset)
        return jsonify({
            'success': True,
            'matches': [
                dict(m.to_dict(), other_user_id=m.other_user(user_id))
                for m in matches
            ],
        })
    except Exception as e:
        return error_response(e)


@app.route('/api/matches/<user_id>/<match_id>', methods=['GET'])
def api_get_match(user_id, match_id):
    """One match, visible only to its two users."""
    try:
        match = get_core().swipes.get_match(match_id, user_id)
        return jsonify({'success': True, 'match': match.to_dict()})
    except Exception as e:
        return error_response(e)


@app.route('/api/score/<user_id>/<candidate_id>', methods=['GET'])
def api_score_pair(user_id, candidate_id):
    """Score breakdown for one candidate."""
    try:
        score = get_core().recommendations.score_pair(user_id, candidate_id)
        return jsonify({'success': True, 'score': score.to_dict()})
    except Exception as e:
        return error_response(e)


@app.route('/api/preferences/<user_id>/invalidate', methods=['POST'])
def api_invalidate_preferences(user_id):
    """Called by the profile service after a preference change."""
    get_core().recommendations.invalidate_preferences(user_id)
    return jsonify({'success': True})


if __name__ == '__main__':
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=False, host='0.0.0.0', port=port)
