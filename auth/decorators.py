from functools import wraps
from flask import request, jsonify, g
from auth.jwt_handler import verify_token


def bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header.replace('Bearer ', '', 1).strip() or None


def require_auth():
    """Authentication decorator"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            token = bearer_token()
            if not token:
                return jsonify({'error': 'Invalid authorization header', 'code': 'unauthenticated'}), 401

            payload = verify_token(token)
            if not payload or not payload.get('user_id'):
                return jsonify({'error': 'Invalid or expired token', 'code': 'unauthenticated'}), 401

            # Identity of the caller for this request
            g.user_id = payload['user_id']
            g.identity = {
                'external_id': payload.get('external_id'),
                'username': payload.get('username'),
                'display_name': payload.get('display_name'),
            }

            return f(*args, **kwargs)
        return decorated_function
    return decorator
