from models.profile import Profile
from utils.errors import STORE_ERRORS, InvalidInputError, UnavailableError
from utils.helpers import utcnow
from utils.logging_config import log_error, log_user_action
from utils.security import sanitize_input
from utils.validators import (
    parse_birth_date, validate_course, validate_gender,
    validate_looking_for, validate_string_list
)

TEXT_FIELDS = {
    'first_name': 100,
    'last_name': 100,
    'bio': 1000,
    'university': 200,
    'faculty': 200,
}


class ProfileService:
    """Profile store: the only place profiles are read or written"""

    def __init__(self, db, logger):
        self.db = db
        self.logger = logger

    def get_profile(self, user_id):
        """Get a profile by id, None when the user has not saved one yet"""
        if not user_id:
            return None
        try:
            return self.db.session.get(Profile, user_id)
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"get_profile {user_id}")
            raise UnavailableError('Profile store unavailable') from e

    def list_active_profiles(self, exclude_user_id=None, exclude_ids=None, gender=None, limit=50):
        """Active profiles matching the filter.

        ``exclude_ids`` may be a collection of ids or a select of ids, which
        keeps the exclusion inside the same query.
        """
        try:
            query = Profile.query.filter(Profile.is_active.is_(True))
            if exclude_user_id is not None:
                query = query.filter(Profile.id != exclude_user_id)
            if exclude_ids is not None:
                query = query.filter(Profile.id.not_in(exclude_ids))
            if gender:
                query = query.filter(Profile.gender == gender)
            return query.order_by(Profile.created_at, Profile.id).limit(limit).all()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context='list_active_profiles')
            raise UnavailableError('Profile store unavailable') from e

    def list_profiles_by_ids(self, user_ids):
        """Batched lookup; ids without a profile are simply absent"""
        user_ids = list(set(user_ids or []))
        if not user_ids:
            return []
        try:
            return Profile.query.filter(Profile.id.in_(user_ids)).all()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context='list_profiles_by_ids')
            raise UnavailableError('Profile store unavailable') from e

    def upsert_profile(self, user_id, data, identity=None):
        """Create the profile on first save, update it afterwards"""
        if not isinstance(data, dict):
            raise InvalidInputError('Profile data must be a JSON object')
        identity = identity or {}
        changes = self._clean_profile_data(data)

        try:
            profile = self.db.session.get(Profile, user_id)
            created = profile is None
            if created:
                profile = Profile(
                    id=user_id,
                    telegram_id=identity.get('external_id'),
                    username=identity.get('username'),
                    first_name=sanitize_input(identity.get('display_name')) or 'User',
                    is_active=True,
                    created_at=utcnow()
                )
                self.db.session.add(profile)

            for field, value in changes.items():
                setattr(profile, field, value)

            self.db.session.commit()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"upsert_profile {user_id}")
            raise UnavailableError('Profile store unavailable') from e

        log_user_action(self.logger, user_id, 'profile_created' if created else 'profile_updated',
                        {'fields': sorted(changes)})
        return profile

    def _clean_profile_data(self, data):
        changes = {}
        for field, max_length in TEXT_FIELDS.items():
            if field in data:
                value = data[field]
                if value is not None and not isinstance(value, str):
                    raise InvalidInputError(f"{field} must be a string")
                value = (value or '').strip()
                if len(value) > max_length:
                    raise InvalidInputError(f"{field} is limited to {max_length} characters")
                changes[field] = sanitize_input(value) if value else (None if field != 'bio' else '')

        if 'first_name' in changes and not changes['first_name']:
            raise InvalidInputError('first_name cannot be empty')

        if 'photos' in data:
            changes['photos'] = validate_string_list(data['photos'], 'photos', max_items=6)
        if 'interests' in data:
            changes['interests'] = [
                sanitize_input(i) for i in validate_string_list(data['interests'], 'interests', unique=True)
            ]
        if 'course' in data:
            changes['course'] = validate_course(data['course'])
        if 'birth_date' in data:
            changes['birth_date'] = parse_birth_date(data['birth_date'])
        if 'gender' in data:
            changes['gender'] = validate_gender(data['gender'])
        if 'looking_for' in data:
            changes['looking_for'] = validate_looking_for(data['looking_for'])
        if 'is_active' in data:
            if not isinstance(data['is_active'], bool):
                raise InvalidInputError('is_active must be a boolean')
            changes['is_active'] = data['is_active']
        return changes
