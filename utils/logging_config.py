"""
Logging for the matching engine: one stream handler per named logger, plus
helpers that render user and audit events as ``key=value`` lines and attach
the same fields to the record for structured handlers.
"""
import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name, level=None):
    """Setup logger with consistent formatting.

    LOG_LEVEL wins over FLASK_ENV; development defaults to DEBUG.
    """
    if level is None:
        level = os.environ.get('LOG_LEVEL', '').upper() or (
            'DEBUG' if os.environ.get('FLASK_ENV') == 'development' else 'INFO'
        )

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    return logger


def format_details(details):
    """``{'b': 2, 'a': 1}`` -> ``'a=1 b=2'``"""
    if not details:
        return ''
    return ' '.join(f"{key}={details[key]}" for key in sorted(details))


def log_error(logger, error, context=None):
    """Log a store or service failure with its exception type"""
    error_msg = f"Error: {type(error).__name__}: {error}"
    if context:
        error_msg += f" | Context: {context}"
    logger.error(error_msg)


def log_user_action(logger, user_id, action, details=None):
    """Log user actions for audit trail"""
    log_msg = f"User {user_id} performed: {action}"
    if details:
        log_msg += f" | {format_details(details)}"
    logger.info(log_msg, extra={'user_id': user_id, 'action': action, 'details': details or {}})


def log_audit(logger, user_id, action, details=None):
    """Audit line for state changes that involve another user.

    Pass ``counterpart_id`` and ``match_id`` in ``details`` so both sides
    of a match can be found in the logs.
    """
    details = dict(details or {})
    audit_msg = f"AUDIT: User {user_id} | Action: {action}"
    if details:
        audit_msg += f" | {format_details(details)}"
    logger.info(audit_msg, extra={
        'audit': True,
        'user_id': user_id,
        'action': action,
        'counterpart_id': details.get('counterpart_id'),
        'match_id': details.get('match_id'),
        'details': details
    })
