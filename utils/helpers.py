"""
General helper utilities for the dating app
"""
from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def calculate_age(birth_date, today=None):
    """Calculate age from birth date"""
    if not birth_date:
        return None

    today = today or datetime.now().date()
    return today.year - birth_date.year - ((today.month, today.day) < (birth_date.month, birth_date.day))


def canonical_pair(user_a, user_b):
    """Order-independent key for an unordered pair of user ids"""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def profile_id_for(external_id):
    """Profile id derived from the messaging platform user id"""
    return f"user_{external_id}"


def truncate_text(text, max_length=100):
    """Truncate text to specified length"""
    if not text or len(text) <= max_length:
        return text
    return text[:max_length-3] + "..."
