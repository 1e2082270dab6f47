from auth.jwt_handler import generate_token
from utils.errors import InvalidInputError, UnauthorizedError
from utils.helpers import profile_id_for
from utils.logging_config import log_user_action
from utils.security import sanitize_input, secure_compare


class AuthService:
    """Exchanges a verified Telegram identity for a session token.

    The Mini App front end (or a bot gateway) vouches for the identity; when
    IDENTITY_SHARED_SECRET is configured the caller must present it.
    """

    def __init__(self, profile_service, logger, shared_secret=None):
        self.profiles = profile_service
        self.logger = logger
        self.shared_secret = shared_secret

    def start_session(self, data, presented_secret=None):
        if self.shared_secret and not secure_compare(presented_secret or '', self.shared_secret):
            self.logger.warning('Session request with a bad identity secret')
            raise UnauthorizedError('Identity could not be verified')

        if not isinstance(data, dict):
            raise InvalidInputError('Session data must be a JSON object')

        external_id = data.get('external_id')
        if isinstance(external_id, bool) or not isinstance(external_id, (int, str)):
            raise InvalidInputError('external_id is required')
        external_id = str(external_id).strip()
        if not external_id.isdigit():
            raise InvalidInputError('external_id must be numeric')

        username = sanitize_input((data.get('username') or '').strip()[:64]) or None
        display_name = sanitize_input((data.get('first_name') or '').strip()[:100]) or None

        user_id = profile_id_for(external_id)
        token = generate_token(
            user_id,
            external_id=int(external_id),
            username=username,
            display_name=display_name
        )

        has_profile = self.profiles.get_profile(user_id) is not None
        log_user_action(self.logger, user_id, 'session_started', {'has_profile': has_profile})

        return {
            'token': token,
            'user_id': user_id,
            'has_profile': has_profile
        }
