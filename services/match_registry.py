from sqlalchemy import and_, func, or_, select

from models.match import Match
from models.message import Message
from utils.db_helpers import insert_ignore
from utils.errors import STORE_ERRORS, ConflictError, NotFoundError, UnavailableError
from utils.helpers import canonical_pair, truncate_text, utcnow
from utils.logging_config import log_audit, log_error

PREVIEW_LENGTH = 80


class MatchRegistry:
    """Durable set of matches and the last-activity ordering of a user's list"""

    def __init__(self, db, profile_service, cache, logger, list_ttl=60):
        self.db = db
        self.profiles = profile_service
        self.cache = cache
        self.logger = logger
        self.list_ttl = list_ttl

    @staticmethod
    def _list_cache_key(user_id):
        return f"user_matches_{user_id}"

    def create_match(self, user_a, user_b):
        """Insert the match for {user_a, user_b} if absent.

        Raises ConflictError when the pair already has a match; the insert
        is atomic on the canonical pair key, so racing callers see exactly
        one success.
        """
        user1_id, user2_id = canonical_pair(user_a, user_b)
        now = utcnow()
        try:
            inserted = insert_ignore(
                self.db,
                Match.__table__,
                {
                    'user1_id': user1_id,
                    'user2_id': user2_id,
                    'created_at': now,
                    'last_activity_at': now,
                },
                ['user1_id', 'user2_id']
            )
            self.db.session.commit()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"create_match {user1_id}/{user2_id}")
            raise UnavailableError('Match registry unavailable') from e

        if not inserted:
            raise ConflictError(f"Match for {user1_id}/{user2_id} already exists")

        match = self.get_match_for_pair(user1_id, user2_id)
        self.invalidate(match)
        log_audit(self.logger, user_a, 'match_created', {'match_id': match.id, 'counterpart_id': user_b})
        return match

    def get_match(self, match_id):
        try:
            match = self.db.session.get(Match, match_id)
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"get_match {match_id}")
            raise UnavailableError('Match registry unavailable') from e
        if match is None:
            raise NotFoundError('Match not found')
        return match

    def get_match_for_pair(self, user_a, user_b):
        """The match for an unordered pair, or None"""
        user1_id, user2_id = canonical_pair(user_a, user_b)
        try:
            return Match.query.filter_by(user1_id=user1_id, user2_id=user2_id).first()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"get_match_for_pair {user1_id}/{user2_id}")
            raise UnavailableError('Match registry unavailable') from e

    def touch_activity(self, match_id, timestamp):
        """Advance last activity; runs inside the caller's transaction"""
        return Match.query.filter(
            Match.id == match_id,
            Match.last_activity_at < timestamp
        ).update({'last_activity_at': timestamp}, synchronize_session=False)

    def list_matches(self, user_id):
        """User's matches, most recently active first, with counterpart profiles"""
        cache_key = self._list_cache_key(user_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            matches = Match.query.filter(
                or_(Match.user1_id == user_id, Match.user2_id == user_id)
            ).order_by(Match.last_activity_at.desc(), Match.id.desc()).all()

            match_ids = [m.id for m in matches]
            last_messages = self._last_messages(match_ids)
            unread_counts = self._unread_counts(match_ids, user_id)
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"list_matches {user_id}")
            raise UnavailableError('Match registry unavailable') from e

        profiles = {
            p.id: p for p in self.profiles.list_profiles_by_ids(
                [m.counterpart_id(user_id) for m in matches]
            )
        }

        result = []
        for match in matches:
            counterpart = profiles.get(match.counterpart_id(user_id))
            if counterpart is None:
                self.logger.warning(f"Match {match.id} has no counterpart profile for {user_id}")
                continue
            last_message = last_messages.get(match.id)
            entry = match.to_dict()
            entry.update({
                'counterpart': counterpart.to_dict(),
                'last_message': {
                    'sender_id': last_message.sender_id,
                    'content': truncate_text(last_message.content, PREVIEW_LENGTH),
                    'created_at': last_message.created_at.isoformat()
                } if last_message else None,
                'unread_count': unread_counts.get(match.id, 0)
            })
            result.append(entry)

        self.cache.set(cache_key, result, ttl=self.list_ttl)
        return result

    def _last_messages(self, match_ids):
        if not match_ids:
            return {}
        latest = select(func.max(Message.id)).where(
            Message.match_id.in_(match_ids)
        ).group_by(Message.match_id)
        return {m.match_id: m for m in Message.query.filter(Message.id.in_(latest)).all()}

    def _unread_counts(self, match_ids, reader_id):
        if not match_ids:
            return {}
        rows = self.db.session.query(
            Message.match_id, func.count(Message.id)
        ).filter(
            and_(
                Message.match_id.in_(match_ids),
                Message.sender_id != reader_id,
                Message.is_read.is_(False)
            )
        ).group_by(Message.match_id).all()
        return dict(rows)

    def invalidate(self, match):
        """Drop cached lists of both participants"""
        self.cache.delete_many([
            self._list_cache_key(match.user1_id),
            self._list_cache_key(match.user2_id)
        ])

    def forget_user(self, user_id):
        """Drop cached lists that embed this user's profile"""
        try:
            matches = Match.query.filter(
                or_(Match.user1_id == user_id, Match.user2_id == user_id)
            ).all()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"forget_user {user_id}")
            raise UnavailableError('Match registry unavailable') from e
        keys = {self._list_cache_key(user_id)}
        keys.update(self._list_cache_key(m.counterpart_id(user_id)) for m in matches)
        self.cache.delete_many(keys)
