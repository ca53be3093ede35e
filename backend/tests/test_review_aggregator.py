import json
import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from homehero.models import Review
from homehero.services.errors import (
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreUnavailableError,
    ServiceStoreValidationError,
)
from homehero.services.review_aggregator import ReviewAggregator, average_rating


def _book(ledger, service, email, day="2024-03-15"):
    return ledger.create_booking(customer_email=email, service_id=service.id, booking_date=day, price=service.price)


def test_review_requires_a_booking(reviews, make_service):
    service = make_service()
    with pytest.raises(ServiceStorePermissionError, match="Only booked users can review"):
        reviews.submit_review(service.id, reviewer_email="stranger@example.com", rating=5)


def test_resubmission_replaces_review_in_place(reviews, ledger, catalog, make_service):
    service = make_service()
    _book(ledger, service, "c@example.com")

    first = reviews.submit_review(service.id, reviewer_email="c@example.com", rating=4, comment="Good job")
    assert first.rating_avg == 4.0
    second = reviews.submit_review(service.id, reviewer_email="C@Example.com", rating=5, comment="")

    assert second.rating_avg == 5.0
    assert len(second.reviews) == 1
    assert second.reviews[0].rating == 5
    assert second.reviews[0].comment == "Good job"
    assert second.reviews[0].date >= first.reviews[0].date

    stored = catalog.get_service(service.id)
    assert stored.rating_avg == 5.0
    assert [review.rating for review in stored.reviews] == [5]


def test_average_over_several_reviewers(reviews, ledger, make_service):
    service = make_service()
    for email, rating in [("a@example.com", 4), ("b@example.com", 5), ("c@example.com", 5)]:
        _book(ledger, service, email)
        result = reviews.submit_review(service.id, reviewer_email=email, rating=rating, comment=f"from {email}")
    assert result.rating_avg == 4.67
    assert [review.user_email for review in result.reviews] == ["a@example.com", "b@example.com", "c@example.com"]


@pytest.mark.parametrize("rating", [None, 0, 6, 4.5, "great", True])
def test_invalid_ratings_are_rejected(reviews, ledger, make_service, rating):
    service = make_service()
    _book(ledger, service, "c@example.com")
    with pytest.raises(ServiceStoreValidationError):
        reviews.submit_review(service.id, reviewer_email="c@example.com", rating=rating)


def test_review_for_deleted_service_is_not_found(reviews, ledger, catalog, make_service):
    service = make_service()
    _book(ledger, service, "c@example.com")
    catalog.delete_service(service.id, actor_email="clean@demo.com")
    with pytest.raises(ServiceStoreNotFoundError):
        reviews.submit_review(service.id, reviewer_email="c@example.com", rating=3)


def test_corrupted_aggregate_is_recomputed_from_reviews(store, reviews, ledger, make_service):
    service = make_service()
    _book(ledger, service, "a@example.com")
    _book(ledger, service, "b@example.com")
    reviews.submit_review(service.id, reviewer_email="a@example.com", rating=2)

    with sqlite3.connect(store.db_path) as conn:
        conn.execute("UPDATE services SET rating_avg = 4.9 WHERE id = ?", (service.id,))

    result = reviews.submit_review(service.id, reviewer_email="b@example.com", rating=3)
    assert result.rating_avg == 2.5


def test_lost_update_is_retried(store, reviews, ledger, make_service, monkeypatch):
    service = make_service()
    _book(ledger, service, "a@example.com")
    _book(ledger, service, "b@example.com")
    reviews.submit_review(service.id, reviewer_email="a@example.com", rating=1)

    original_split = store.split_reviews
    calls = {"count": 0}

    def racing_split(raw, service_id=None):
        calls["count"] += 1
        if calls["count"] == 1:
            # Another writer lands between our read and our conditional update.
            conn = sqlite3.connect(store.db_path)
            with conn:
                conn.execute("UPDATE services SET version = version + 1 WHERE id = ?", (service.id,))
            conn.close()
        return original_split(raw, service_id)

    monkeypatch.setattr(store, "split_reviews", racing_split)
    result = reviews.submit_review(service.id, reviewer_email="b@example.com", rating=5)

    assert calls["count"] == 2
    assert result.rating_avg == 3.0
    assert len(result.reviews) == 2


def test_review_gives_up_when_every_write_loses(store, ledger, catalog, make_service, monkeypatch):
    service = make_service()
    _book(ledger, service, "c@example.com")
    original_split = store.split_reviews

    def always_racing(raw, service_id=None):
        with sqlite3.connect(store.db_path) as conn:
            conn.execute("UPDATE services SET version = version + 1 WHERE id = ?", (service.id,))
        return original_split(raw, service_id)

    monkeypatch.setattr(store, "split_reviews", always_racing)
    aggregator = ReviewAggregator(store, ledger, max_attempts=1)
    with pytest.raises(ServiceStoreUnavailableError):
        aggregator.submit_review(service.id, reviewer_email="c@example.com", rating=4)

    monkeypatch.undo()
    assert catalog.get_service(service.id).reviews == []


def test_unreadable_review_entries_survive_a_new_review(store, reviews, ledger, make_service):
    service = make_service()
    _book(ledger, service, "c@example.com")
    legacy = {"rating": 11, "note": "imported"}
    with sqlite3.connect(store.db_path) as conn:
        conn.execute("UPDATE services SET reviews_json = ? WHERE id = ?", (json.dumps([legacy]), service.id))

    result = reviews.submit_review(service.id, reviewer_email="c@example.com", rating=4)
    assert result.rating_avg == 4.0
    assert [review.user_email for review in result.reviews] == ["c@example.com"]

    with sqlite3.connect(store.db_path) as conn:
        stored = json.loads(conn.execute("SELECT reviews_json FROM services WHERE id = ?", (service.id,)).fetchone()[0])
    assert legacy in stored
    assert len(stored) == 2


def test_concurrent_reviews_from_different_customers_are_all_kept(reviews, ledger, catalog, make_service):
    service = make_service()
    emails = [f"customer{n}@example.com" for n in range(6)]
    for email in emails:
        _book(ledger, service, email)
    ratings = dict(zip(emails, [1, 2, 3, 4, 5, 5]))

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(lambda email: reviews.submit_review(service.id, reviewer_email=email, rating=ratings[email]), emails))

    stored = catalog.get_service(service.id)
    assert sorted(review.user_email for review in stored.reviews) == sorted(emails)
    assert stored.rating_avg == 3.33


def test_average_rating_rounding():
    def review(rating):
        return Review(user_email=f"{rating}@x.com", rating=rating, date="2024-01-01T00:00:00+00:00")

    assert average_rating([]) == 0.0
    assert average_rating([review(4), review(4), review(5), review(4), review(4), review(4), review(4), review(4)]) == 4.13
    assert average_rating([review(1), review(2)]) == 1.5
