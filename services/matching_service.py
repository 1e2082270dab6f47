from dataclasses import dataclass
from typing import Optional

from models.match import Match
from models.swipe import Swipe, SwipeDirection
from utils.errors import STORE_ERRORS, ConflictError, UnavailableError
from utils.logging_config import log_error


@dataclass
class MatchResult:
    """Outcome of checking a like for reciprocity"""
    match: Optional[Match] = None
    created: bool = False

    @property
    def matched(self):
        return self.match is not None


class MatchingService:
    """Turns a recorded like into a match when the reverse like exists"""

    def __init__(self, db, match_registry, logger):
        self.db = db
        self.registry = match_registry
        self.logger = logger

    def has_liked(self, from_user_id, to_user_id):
        """True if the ledger holds a like from -> to"""
        try:
            return bool(self.db.session.query(
                Swipe.query.filter_by(
                    from_user_id=from_user_id,
                    to_user_id=to_user_id,
                    direction=SwipeDirection.LIKE
                ).exists()
            ).scalar())
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"has_liked {from_user_id}->{to_user_id}")
            raise UnavailableError('Swipe ledger unavailable') from e

    def detect(self, liker_id, liked_id):
        """Check the like liker -> liked for a mutual match.

        Must run after the like itself is committed: of two simultaneous
        likes, the later commit always sees the earlier one here, and the
        registry's unique pair key keeps creation exactly-once.
        """
        if not self.has_liked(liked_id, liker_id):
            return MatchResult()

        try:
            match = self.registry.create_match(liker_id, liked_id)
            self.logger.info(f"New match {match.id} between {liker_id} and {liked_id}")
            return MatchResult(match=match, created=True)
        except ConflictError:
            # Lost the race or replayed like: the match is already there
            match = self.registry.get_match_for_pair(liker_id, liked_id)
            self.logger.info(f"Match between {liker_id} and {liked_id} already exists")
            return MatchResult(match=match, created=False)
