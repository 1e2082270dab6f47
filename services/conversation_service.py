from models.message import Message
from utils.errors import STORE_ERRORS, InvalidInputError, UnauthorizedError, UnavailableError
from utils.helpers import utcnow
from utils.logging_config import log_error, log_user_action
from utils.security import clean_message_text

MAX_MESSAGE_LENGTH = 4000


class ConversationService:
    """Append-only message log per match"""

    def __init__(self, db, match_registry, logger):
        self.db = db
        self.registry = match_registry
        self.logger = logger

    def _participant_match(self, match_id, user_id):
        match = self.registry.get_match(match_id)
        if not match.involves(user_id):
            self.logger.warning(f"User {user_id} is not a participant of match {match_id}")
            raise UnauthorizedError('You are not a participant of this match')
        return match

    def append_message(self, match_id, sender_id, content):
        """Store a message from one of the match users and bump last activity"""
        text = clean_message_text(content)
        if not text:
            raise InvalidInputError('Message content cannot be empty')
        if len(text) > MAX_MESSAGE_LENGTH:
            raise InvalidInputError(f"Message is limited to {MAX_MESSAGE_LENGTH} characters")

        match = self._participant_match(match_id, sender_id)

        # Never earlier than the last message, so timestamp order follows call order
        created_at = max(utcnow(), match.last_activity_at)

        try:
            message = Message(
                match_id=match.id,
                sender_id=sender_id,
                content=text,
                is_read=False,
                created_at=created_at
            )
            self.db.session.add(message)
            self.db.session.flush()
            self.registry.touch_activity(match.id, created_at)
            self.db.session.commit()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"append_message match={match_id}")
            raise UnavailableError('Conversation log unavailable') from e

        self.registry.invalidate(match)
        log_user_action(self.logger, sender_id, 'message_sent', {'match_id': match.id, 'message_id': message.id})
        return message

    def list_messages(self, match_id, user_id, after_id=None, limit=None):
        """Messages in creation order, ties broken by insertion order.

        ``after_id`` and ``limit`` allow fetching only what is new; without
        them the full history is returned.
        """
        self._participant_match(match_id, user_id)

        try:
            query = Message.query.filter(Message.match_id == match_id)
            if after_id is not None:
                query = query.filter(Message.id > after_id)
            query = query.order_by(Message.created_at.asc(), Message.id.asc())
            if limit is not None:
                query = query.limit(limit)
            return query.all()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"list_messages match={match_id}")
            raise UnavailableError('Conversation log unavailable') from e

    def mark_read(self, match_id, reader_id):
        """Mark the counterpart's messages as read, returns how many changed"""
        match = self._participant_match(match_id, reader_id)

        try:
            updated = Message.query.filter(
                Message.match_id == match.id,
                Message.sender_id != reader_id,
                Message.is_read.is_(False)
            ).update({'is_read': True}, synchronize_session=False)
            self.db.session.commit()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"mark_read match={match_id}")
            raise UnavailableError('Conversation log unavailable') from e

        if updated:
            self.registry.invalidate(match)
        return updated
