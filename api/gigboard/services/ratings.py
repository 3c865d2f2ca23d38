from __future__ import annotations

from gigboard.services.errors import InvalidInputError, NotFoundError
from gigboard.services.records import RatingSummary
from gigboard.services.store import StoreSession

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidInputError("rating must be an integer between 1 and 5")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise InvalidInputError("rating must be between 1 and 5")
    return rating


def apply_rating(summary: RatingSummary, rating: int) -> RatingSummary:
    """Fold one more rating into a running mean."""
    count = summary.count + 1
    average = (summary.average * summary.count + rating) / count
    return RatingSummary(average=average, count=count)


async def record_rating(session: StoreSession, user_id: str, rating: int) -> RatingSummary:
    """Apply ``rating`` to ``user_id`` inside the caller's transaction.

    Exactly-once application per engagement and party is guaranteed by the
    single-write rating slot on the engagement, not here.
    """
    user = await session.get_user(user_id, for_update=True)
    if user is None:
        raise NotFoundError("rated user not found")
    summary = apply_rating(user.rating, rating)
    await session.update_user_rating(user_id, summary)
    return summary
