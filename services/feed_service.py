from services.swipe_service import SwipeService


class FeedService:
    """Candidate feed: active profiles the requester has not swiped yet"""

    def __init__(self, profile_service, logger, batch_size=50):
        self.profiles = profile_service
        self.logger = logger
        self.batch_size = batch_size

    def next_batch(self, requester_id, limit=None):
        """Next batch of candidates, at most ``limit`` (capped at the batch size).

        An empty list means nobody is left to show. A requester without a
        profile, or a limit of zero, also gets an empty list. Store failures raise
        UnavailableError so they are never confused with an empty feed.
        """
        limit = self.batch_size if limit is None else min(int(limit), self.batch_size)
        if limit <= 0:
            return []

        requester = self.profiles.get_profile(requester_id)
        if requester is None:
            self.logger.info(f"Feed requested by {requester_id} without a profile")
            return []

        gender = requester.looking_for if requester.looking_for in ('male', 'female') else None

        candidates = self.profiles.list_active_profiles(
            exclude_user_id=requester_id,
            exclude_ids=SwipeService.swiped_ids_query(requester_id),
            gender=gender,
            limit=limit
        )

        self.logger.debug(f"Feed for {requester_id}: {len(candidates)} candidates")
        return candidates
