from dataclasses import dataclass, field

from sqlalchemy import select

from models.swipe import Swipe, SwipeDirection
from services.matching_service import MatchResult
from utils.db_helpers import insert_ignore
from utils.errors import STORE_ERRORS, InvalidInputError, NotFoundError, UnavailableError
from utils.helpers import utcnow
from utils.logging_config import log_error, log_user_action


@dataclass
class SwipeOutcome:
    swipe: Swipe
    duplicate: bool = False
    match_result: MatchResult = field(default_factory=MatchResult)


class SwipeService:
    """Swipe ledger writer; every like is checked for a mutual match"""

    def __init__(self, db, profile_service, matching_service, logger):
        self.db = db
        self.profiles = profile_service
        self.matching = matching_service
        self.logger = logger

    def record_swipe(self, from_user_id, to_user_id, direction):
        """Append a swipe and, for likes, run match detection.

        A repeated swipe on the same target keeps the first decision and is
        reported as a duplicate; a stored like is re-checked for a match so a
        replayed request still reports it.
        """
        direction = SwipeDirection.parse(direction)
        if not to_user_id or not isinstance(to_user_id, str):
            raise InvalidInputError('to_user_id is required')
        if from_user_id == to_user_id:
            raise InvalidInputError('Cannot swipe on yourself')

        if self.profiles.get_profile(from_user_id) is None:
            raise NotFoundError('Create a profile before swiping')
        if self.profiles.get_profile(to_user_id) is None:
            raise NotFoundError('Profile not found')

        try:
            inserted = insert_ignore(
                self.db,
                Swipe.__table__,
                {
                    'from_user_id': from_user_id,
                    'to_user_id': to_user_id,
                    'direction': direction,
                    'created_at': utcnow(),
                },
                ['from_user_id', 'to_user_id']
            )
            self.db.session.commit()
            swipe = Swipe.query.filter_by(from_user_id=from_user_id, to_user_id=to_user_id).one()
        except STORE_ERRORS as e:
            self.db.session.rollback()
            log_error(self.logger, e, context=f"record_swipe {from_user_id}->{to_user_id}")
            raise UnavailableError('Swipe ledger unavailable') from e

        if inserted:
            log_user_action(self.logger, from_user_id, f"swipe_{direction.value}", {'target': to_user_id})
        else:
            self.logger.info(
                f"Repeat swipe {from_user_id}->{to_user_id} ignored, keeping {swipe.direction.value}"
            )

        outcome = SwipeOutcome(swipe=swipe, duplicate=not inserted)
        if swipe.is_like:
            outcome.match_result = self.matching.detect(from_user_id, to_user_id)
        return outcome

    @staticmethod
    def swiped_ids_query(user_id):
        """Select of ids the user has already decided on, in either direction"""
        return select(Swipe.to_user_id).where(Swipe.from_user_id == user_id)
