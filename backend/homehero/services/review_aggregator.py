import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional

from homehero.models import Review, ReviewResult
from homehero.services.booking_ledger import BookingLedger, booking_ledger
from homehero.services.catalog_store import CatalogStore, catalog_store, normalize_email, utc_now
from homehero.services.errors import (
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreUnavailableError,
    ServiceStoreValidationError,
)

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 20


def average_rating(reviews: List[Review]) -> float:
    if not reviews:
        return 0.0
    mean = Decimal(sum(review.rating for review in reviews)) / Decimal(len(reviews))
    return float(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def clean_rating(value: Any) -> int:
    if value is None or value == "":
        raise ServiceStoreValidationError("rating required")
    if isinstance(value, bool):
        raise ServiceStoreValidationError("rating must be an integer between 1 and 5")
    try:
        rating = float(value)
    except (TypeError, ValueError) as exc:
        raise ServiceStoreValidationError("rating must be an integer between 1 and 5") from exc
    if not rating.is_integer() or not 1 <= rating <= 5:
        raise ServiceStoreValidationError("rating must be an integer between 1 and 5")
    return int(rating)


def upsert_review(reviews: List[Review], *, user_email: str, rating: int, comment: str, timestamp: str) -> List[Review]:
    updated: List[Review] = []
    replaced = False
    for review in reviews:
        if not replaced and review.user_email == user_email:
            updated.append(
                review.model_copy(update={"rating": rating, "comment": comment or review.comment, "date": timestamp})
            )
            replaced = True
        else:
            updated.append(review)
    if not replaced:
        updated.append(Review(user_email=user_email, rating=rating, comment=comment, date=timestamp))
    return updated


class ReviewAggregator:
    """Keeps each service's embedded reviews and ``rating_avg`` in step.

    Reviews live inside the service row, so one conditional UPDATE carries
    both the new review set and the average recomputed from it. The row's
    ``version`` column turns that UPDATE into a compare-and-swap; a writer
    that loses the race re-reads and tries again.
    """

    def __init__(self, store: CatalogStore, ledger: BookingLedger, max_attempts: int = MAX_WRITE_ATTEMPTS):
        self._store = store
        self._ledger = ledger
        self._max_attempts = max_attempts

    def submit_review(
        self,
        service_id: str,
        *,
        reviewer_email: Optional[str],
        rating: Any,
        comment: Optional[str] = None,
    ) -> ReviewResult:
        score = clean_rating(rating)
        reviewer = normalize_email(reviewer_email)
        if not reviewer:
            raise ServiceStoreValidationError("Missing required fields: user_email")

        if not self._ledger.has_booking(reviewer, service_id):
            raise ServiceStorePermissionError("Only booked users can review")

        text = comment.strip() if isinstance(comment, str) else ""
        for _ in range(self._max_attempts):
            with self._store.transaction() as conn:
                row = self._store.fetch_service(conn, service_id)
                if row is None:
                    raise ServiceStoreNotFoundError("Service not found")
                now = utc_now()
                current, unreadable = self._store.split_reviews(row["reviews_json"], service_id)
                reviews = upsert_review(
                    current,
                    user_email=reviewer,
                    rating=score,
                    comment=text,
                    timestamp=now,
                )
                rating_avg = average_rating(reviews)
                cursor = conn.execute(
                    """
                    UPDATE services
                    SET reviews_json = ?, rating_avg = ?, version = version + 1, updated_at = ?
                    WHERE id = ? AND version = ?
                    """,
                    (self._store.dump_reviews(reviews, unreadable), rating_avg, now, service_id, row["version"]),
                )
            if cursor.rowcount == 1:
                return ReviewResult(rating_avg=rating_avg, reviews=reviews)
            logger.info("Review write on %s lost a concurrent update, retrying", service_id)
        raise ServiceStoreUnavailableError("Service is busy, retry the review")


review_aggregator = ReviewAggregator(catalog_store, booking_ledger)
