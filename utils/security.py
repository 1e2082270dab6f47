"""
Security utilities for input sanitization and validation
"""


def sanitize_input(text):
    """Trim user text and drop NUL bytes.

    Text is stored as the user typed it; escaping for HTML is done by the
    client when rendering, so saving a value twice leaves it unchanged.
    """
    if not text:
        return text

    return text.replace('\x00', '').strip()


def clean_message_text(text):
    """Trim chat message content; returns '' when nothing is left"""
    if not isinstance(text, str):
        return ''
    return sanitize_input(text) or ''


def validate_cors_origin(request, allowed_origins):
    """Validate CORS origin"""
    origin = request.headers.get('Origin')
    if not origin:
        return True

    origin_lower = origin.lower()
    for allowed in allowed_origins:
        if origin_lower == allowed.lower():
            return True

    return False


def secure_compare(a, b):
    """Secure string comparison to prevent timing attacks"""
    if not isinstance(a, str) or not isinstance(b, str):
        return False

    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)

    return result == 0
