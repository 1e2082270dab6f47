import jwt
from datetime import datetime, timedelta, timezone
from flask import current_app

JWT_ALGORITHM = 'HS256'


def _secret():
    return current_app.config['SECRET_KEY']


def generate_token(user_id, external_id=None, username=None, display_name=None, expires_in=None):
    """Generate JWT session token carrying the caller's identity"""
    if expires_in is None:
        expires_in = current_app.config.get('JWT_EXPIRATION_HOURS', 24)
    now = datetime.now(timezone.utc)
    payload = {
        'user_id': user_id,
        'external_id': external_id,
        'username': username,
        'display_name': display_name,
        'exp': now + timedelta(hours=expires_in),
        'iat': now
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def verify_token(token):
    """Verify and decode JWT token"""
    try:
        return jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def refresh_token(token):
    """Refresh JWT token if valid"""
    payload = verify_token(token)
    if payload:
        return generate_token(
            payload['user_id'],
            external_id=payload.get('external_id'),
            username=payload.get('username'),
            display_name=payload.get('display_name')
        )
    return None
