"""
PolyDate - campus dating Mini App backend
Feed, swipes, mutual matches and match chat.
"""
import os
import re
import secrets
import uuid

import redis
from flask import Flask, request, jsonify, g, abort
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from sqlalchemy import text
from werkzeug.middleware.proxy_fix import ProxyFix

# === LOGGING CONFIGURATION ===
from utils.logging_config import setup_logger, log_error

logger = setup_logger('polydate')

# === CONSTANTS ===
TESTING = os.environ.get('TESTING', '').lower() in ('1', 'true', 'yes')
PRODUCTION = bool(os.environ.get('PRODUCTION'))

DEFAULT_ORIGINS = [
    'https://web.telegram.org',
    'http://localhost:5000',
    'http://127.0.0.1:5000'
]
ALLOWED_ORIGINS = [
    o.strip() for o in os.environ.get('ALLOWED_ORIGINS', ','.join(DEFAULT_ORIGINS)).split(',') if o.strip()
]

# Dangerous patterns for XSS protection
DANGEROUS_PATTERNS = [
    r'<script', r'javascript:', r'onerror=', r'onclick=',
    r'onload=', r'<iframe', r'<object', r'<embed',
    r'vbscript:', r'data:text/html'
]

# === REDIS SETUP ===
REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379')
redis_client = redis.from_url(REDIS_URL) if REDIS_URL else None

# === CREATE FLASK APP ===
app = Flask(__name__)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

# === FLASK CONFIGURATION ===
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY') or secrets.token_hex(32)
app.config['TESTING'] = TESTING
app.config['JWT_EXPIRATION_HOURS'] = int(os.environ.get('JWT_EXPIRATION_HOURS', 24))
app.config['FEED_BATCH_SIZE'] = int(os.environ.get('FEED_BATCH_SIZE', 50))
app.config['MATCH_LIST_CACHE_TTL'] = int(os.environ.get('MATCH_LIST_CACHE_TTL', 60))
app.config['IDENTITY_SHARED_SECRET'] = os.environ.get('IDENTITY_SHARED_SECRET') or None
app.config['RATELIMIT_ENABLED'] = not TESTING

if not os.environ.get('SECRET_KEY'):
    if PRODUCTION:
        raise ValueError("SECRET_KEY must be set in production")
    logger.warning("Using generated secret key - sessions will not survive a restart")

# Database configuration
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get(
    'DATABASE_URL',
    'postgresql://localhost/polydate'
).replace('postgres://', 'postgresql://', 1)
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'pool_size': 20,
        'pool_recycle': 3600,
        'pool_pre_ping': True,
        'max_overflow': 40,
        'pool_timeout': 30
    }

# === INITIALIZE EXTENSIONS ===
db = SQLAlchemy(app)
migrate = Migrate(app, db)
CORS(app, origins=ALLOWED_ORIGINS, supports_credentials=True)

# Security headers
Talisman(app,
    force_https=PRODUCTION and not TESTING,
    strict_transport_security={'max_age': 31536000, 'include_subdomains': True},
    content_security_policy=False,
    frame_options='SAMEORIGIN'
)

# Rate limiting
limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=["5000 per day", "500 per hour"],
    storage_uri="memory://"
)

# === IMPORT UTILITIES AND MODELS ===
from utils.security import validate_cors_origin
from utils.cache_manager import CacheManager
from utils.errors import MatchingError, NotFoundError, InvalidInputError, STORE_ERRORS
from utils.helpers import utcnow

cache = CacheManager(redis_client)

# === DATABASE MODELS (Import in correct order) ===
from models.profile import Profile
from models.swipe import Swipe, SwipeDirection
from models.match import Match
from models.message import Message

# === SERVICE IMPORTS ===
from services.profile_service import ProfileService
from services.match_registry import MatchRegistry
from services.matching_service import MatchingService
from services.swipe_service import SwipeService
from services.feed_service import FeedService
from services.conversation_service import ConversationService
from services.auth_service import AuthService
from services.websocket_service import WebSocketService
from auth.decorators import require_auth, bearer_token
from auth.jwt_handler import refresh_token

# Initialize WebSocket service
websocket_service = WebSocketService(app, logger, ALLOWED_ORIGINS)
socketio = websocket_service.socketio

# === INITIALIZE SERVICES ===
profile_service = ProfileService(db, logger)
match_registry = MatchRegistry(db, profile_service, cache, logger, list_ttl=app.config['MATCH_LIST_CACHE_TTL'])
matching_service = MatchingService(db, match_registry, logger)
swipe_service = SwipeService(db, profile_service, matching_service, logger)
feed_service = FeedService(profile_service, logger, batch_size=app.config['FEED_BATCH_SIZE'])
conversation_service = ConversationService(db, match_registry, logger)
auth_service = AuthService(profile_service, logger, shared_secret=app.config['IDENTITY_SHARED_SECRET'])


# === REQUEST HANDLERS ===
@app.before_request
def before_request():
    g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
    g.request_start_time = utcnow()

    logger.info('request_started', extra={
        'request_id': g.request_id,
        'method': request.method,
        'path': request.path,
        'remote_addr': request.remote_addr
    })

@app.before_request
def check_cors():
    if request.method == 'OPTIONS':
        return

    if not validate_cors_origin(request, ALLOWED_ORIGINS):
        logger.warning(f"CORS validation failed for origin: {request.headers.get('Origin')}")
        abort(403, description="CORS validation failed")

@app.before_request
def validate_inputs():
    """Check query and form inputs for XSS attempts"""
    for key, value in request.values.items():
        if value and isinstance(value, str):
            for pattern in DANGEROUS_PATTERNS:
                if re.search(pattern, value, re.IGNORECASE):
                    logger.warning(f"Potential XSS attempt blocked: {key}={value[:50]}...")
                    return jsonify({'error': 'Invalid input detected', 'code': 'invalid_input'}), 400

@app.after_request
def after_request(response):
    if hasattr(g, 'request_start_time'):
        duration = (utcnow() - g.request_start_time).total_seconds()

        logger.info('request_completed', extra={
            'request_id': getattr(g, 'request_id', 'unknown'),
            'method': request.method,
            'path': request.path,
            'status_code': response.status_code,
            'duration_ms': round(duration * 1000, 2)
        })

    response.headers['X-Request-ID'] = getattr(g, 'request_id', 'unknown')
    return response


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError('Request body must be a JSON object')
    return data


def int_arg(name):
    value = request.args.get(name)
    if value in (None, ''):
        return None
    try:
        value = int(value)
    except ValueError:
        raise InvalidInputError(f"{name} must be an integer")
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative")
    return value


def match_event(match, counterpart):
    return {
        'type': 'match',
        'match_id': match.id,
        'counterpart': counterpart.to_dict()
    }


# === API ENDPOINTS ===

# Health check
@app.route('/api/health', methods=['GET'])
def health_check():
    try:
        db.session.execute(text('SELECT 1'))
        database = 'ok'
    except STORE_ERRORS as e:
        db.session.rollback()
        log_error(logger, e, context='health_check')
        database = 'unavailable'

    return jsonify({
        'status': 'healthy' if database == 'ok' else 'degraded',
        'database': database,
        'timestamp': utcnow().isoformat()
    }), 200 if database == 'ok' else 503


@app.route('/api/auth/session', methods=['POST'])
@limiter.limit("30 per minute")
def start_session():
    """Exchange the Mini App identity for a bearer token"""
    result = auth_service.start_session(
        request.get_json(silent=True),
        request.headers.get('X-Identity-Secret')
    )
    return jsonify(result)


@app.route('/api/auth/refresh', methods=['POST'])
@require_auth()
def refresh_session():
    token = refresh_token(bearer_token())
    return jsonify({'token': token, 'user_id': g.user_id})


@app.route('/api/profile', methods=['GET'])
@require_auth()
def get_profile():
    profile = profile_service.get_profile(g.user_id)
    if profile is None:
        raise NotFoundError('Profile not created yet')
    return jsonify({'profile': profile.to_dict()})


@app.route('/api/profile', methods=['PUT'])
@require_auth()
def update_profile():
    profile = profile_service.upsert_profile(g.user_id, json_body(), identity=g.identity)
    # Counterparts embed this profile in their cached match lists
    match_registry.forget_user(g.user_id)
    return jsonify({'profile': profile.to_dict()})


@app.route('/api/feed', methods=['GET'])
@require_auth()
def get_feed():
    profiles = feed_service.next_batch(g.user_id, int_arg('limit'))
    return jsonify({
        'profiles': [p.to_dict() for p in profiles],
        'exhausted': not profiles
    })


@app.route('/api/swipes', methods=['POST'])
@require_auth()
@limiter.limit("300 per hour")
def create_swipe():
    data = json_body()
    outcome = swipe_service.record_swipe(g.user_id, data.get('to_user_id'), data.get('direction'))

    result = outcome.match_result
    event = None
    if result.matched:
        target = profile_service.get_profile(outcome.swipe.to_user_id)
        event = match_event(result.match, target)

        # Only the creating request notifies; replays just report the match
        if result.created:
            swiper = profile_service.get_profile(g.user_id)
            websocket_service.notify_new_match(target.id, match_event(result.match, swiper))

    return jsonify({
        'swipe': outcome.swipe.to_dict(),
        'duplicate': outcome.duplicate,
        'match': result.match.to_dict() if result.matched else None,
        'event': event
    })


@app.route('/api/matches', methods=['GET'])
@require_auth()
def get_matches():
    """Get user's matches, most recent activity first"""
    return jsonify({'matches': match_registry.list_matches(g.user_id)})


@app.route('/api/matches/<int:match_id>/messages', methods=['GET'])
@require_auth()
def get_messages(match_id):
    messages = conversation_service.list_messages(
        match_id, g.user_id,
        after_id=int_arg('after_id'),
        limit=int_arg('limit')
    )
    return jsonify({'messages': [m.to_dict() for m in messages]})


@app.route('/api/matches/<int:match_id>/messages', methods=['POST'])
@require_auth()
@limiter.limit("600 per hour")
def send_message(match_id):
    message = conversation_service.append_message(match_id, g.user_id, json_body().get('content'))
    return jsonify({'message': message.to_dict()}), 201


@app.route('/api/matches/<int:match_id>/read', methods=['POST'])
@require_auth()
def mark_messages_read(match_id):
    updated = conversation_service.mark_read(match_id, g.user_id)
    return jsonify({'updated': updated})


# === ERROR HANDLERS ===
@app.errorhandler(MatchingError)
def matching_error(error):
    if error.status_code >= 500:
        logger.error(f"{error.code}: {error.message} (request {getattr(g, 'request_id', 'unknown')})")
    body = error.to_dict()
    body['request_id'] = getattr(g, 'request_id', 'unknown')
    return jsonify(body), error.status_code

@app.errorhandler(404)
def not_found(error):
    return jsonify({
        'error': 'Resource not found',
        'code': 'not_found',
        'request_id': getattr(g, 'request_id', 'unknown')
    }), 404

@app.errorhandler(429)
def rate_limit_exceeded(error):
    return jsonify({
        'error': 'Rate limit exceeded',
        'code': 'rate_limited',
        'retryable': True,
        'message': str(error.description),
        'request_id': getattr(g, 'request_id', 'unknown')
    }), 429

@app.errorhandler(500)
def internal_error(error):
    db.session.rollback()
    logger.error('internal_server_error', extra={
        'error': str(error),
        'request_id': getattr(g, 'request_id', 'unknown')
    }, exc_info=True)
    return jsonify({
        'error': 'Internal server error',
        'code': 'error',
        'request_id': getattr(g, 'request_id', 'unknown')
    }), 500


# === INITIALIZATION ===
def initialize_database(seed_demo=False):
    """Create tables, optionally with demo profiles"""
    with app.app_context():
        db.create_all()
        logger.info("Database tables created")

        if seed_demo:
            from utils.db_init import create_demo_profiles
            create_demo_profiles(db, logger)


@app.cli.command('init-db')
def init_db_command():
    """Create database tables"""
    initialize_database()


@app.cli.command('seed-demo')
def seed_demo_command():
    """Create tables and demo profiles for local development"""
    initialize_database(seed_demo=True)


def main():
    initialize_database(seed_demo=not PRODUCTION)

    # Run with WebSocket support
    port = int(os.environ.get('PORT', 5000))
    websocket_service.run(host='0.0.0.0', port=port, debug=not PRODUCTION)
