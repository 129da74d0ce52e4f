"""
JSON API endpoints (`/api/v1`).

These back the browser widgets (type-ahead search, the map, heart buttons) and
can be used by other clients:

- GET  /api/v1/search?q=...               full-text store search
- GET  /api/v1/stores/near?lng=...&lat=...  stores within 10km, nearest first
- POST /api/v1/stores/<id>/heart          toggle a heart for the current user
- POST /api/v1/token                      exchange e-mail/password for a JWT

The heart endpoint accepts either the browser session (CSRF-checked through
the `X-CSRFToken` header) or an `Authorization: Bearer <token>` header.
"""
from flask import Blueprint, request, jsonify, current_app, g, abort
from flask_jwt_extended import create_access_token, verify_jwt_in_request, get_jwt_identity

from app.extensions import csrf
from app.models import store as store_model
from app.models import user as user_model
from utils.db_utils import get_store_or_404

api_bp = Blueprint('api_bp', __name__, url_prefix='/api/v1')


def _has_bearer_token():
    return request.headers.get('Authorization', '').startswith('Bearer ')


@api_bp.before_request
def protect_cookie_requests():
    """
    Applies CSRF protection to state-changing requests authenticated by the
    session cookie. Bearer-token requests carry no ambient credentials and are
    exempt, as is the token endpoint, which authenticates by its request body.
    """
    if request.endpoint == 'api_bp.issue_token':
        return
    if request.method in ('POST', 'PUT', 'PATCH', 'DELETE') and not _has_bearer_token():
        if current_app.config.get('WTF_CSRF_ENABLED', True):
            csrf.protect()


def _api_user():
    """
    Resolves the caller: a valid bearer token wins, otherwise the session user.
    Returns None for anonymous callers.
    """
    if _has_bearer_token():
        verify_jwt_in_request()
        return user_model.get_user(int(get_jwt_identity()))
    return g.get('user')


def _parse_coordinate(name):
    try:
        return float(request.args[name])
    except (KeyError, ValueError):
        abort(400, description=f"Query parameter '{name}' must be a number.")


@api_bp.route('/search', methods=['GET'])
def search_stores():
    """Stores whose name or description match `q`, best match first."""
    query = request.args.get('q', '')
    stores = store_model.search_stores(query, current_app.config['SEARCH_RESULT_LIMIT'])
    return jsonify([store_model.store_to_json(store) for store in stores])


@api_bp.route('/stores/near', methods=['GET'])
def map_stores():
    """Stores within `NEAR_MAX_DISTANCE_METERS` of (`lng`, `lat`), nearest first."""
    lng = _parse_coordinate('lng')
    lat = _parse_coordinate('lat')
    if not (-180 <= lng <= 180 and -90 <= lat <= 90):
        abort(400, description="Coordinates are out of range.")

    stores = store_model.find_stores_near(
        lng, lat,
        current_app.config['NEAR_MAX_DISTANCE_METERS'],
        current_app.config['NEAR_RESULT_LIMIT']
    )
    return jsonify([store_model.store_to_json(store) for store in stores])


@api_bp.route('/stores/<int:store_id>/heart', methods=['POST'])
def heart_store(store_id):
    """
    Adds `store_id` to the caller's hearts, or removes it if already hearted.

    Returns:
        JSON: The user with the updated `hearts` list.
    """
    user = _api_user()
    if user is None:
        abort(401, description="You must be logged in to heart a store.")

    store = get_store_or_404(store_id)
    hearted = user_model.toggle_heart(user['id'], store['id'])
    current_app.logger.info(
        "Heart toggled.",
        extra={'user_id': user['id'], 'store_id': store['id'], 'hearted': hearted}
    )
    return jsonify(user_model.user_to_json(user))


@api_bp.route('/token', methods=['POST'])
def issue_token():
    """
    Authenticates an e-mail/password pair and returns a JWT access token.

    Request Body (JSON):
        {"email": "you@example.com", "password": "..."}
    """
    data = request.get_json(silent=True) or {}
    if not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Missing email or password in JSON payload.', 'status': 400}), 400

    user = user_model.authenticate(data['email'], data['password'])
    if user is None:
        current_app.logger.warning("Failed API token request.", extra={'email_attempt': data['email']})
        return jsonify({'error': 'Bad email or password.', 'status': 401}), 401

    access_token = create_access_token(identity=str(user['id']))
    current_app.logger.info("API token issued.", extra={'user_id': user['id']})
    return jsonify(access_token=access_token), 200
