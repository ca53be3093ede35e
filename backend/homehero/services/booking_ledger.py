import logging
from datetime import date, datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

from homehero.models import Booking, BookingView, ServiceSummary
from homehero.services.catalog_store import CatalogStore, catalog_store, clean_price, normalize_email, utc_now
from homehero.services.errors import (
    ServiceStoreConflictError,
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreValidationError,
)

logger = logging.getLogger(__name__)


def parse_booking_date(value: Any) -> str:
    """Normalize a booking date to ``YYYY-MM-DD``.

    Full ISO datetimes are accepted; aware values are converted to UTC
    before the calendar date is taken.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value.isoformat()
    else:
        text = value.strip() if isinstance(value, str) else ""
        if not text:
            raise ServiceStoreValidationError("Missing required fields: booking_date")
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ServiceStoreValidationError("booking_date must be an ISO date") from exc
    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(timezone.utc)
        except OverflowError as exc:
            raise ServiceStoreValidationError("booking_date must be an ISO date") from exc
    return parsed.date().isoformat()


class BookingLedger:
    """Creates and cancels bookings.

    At most one booking exists per (customer, service, date). That rule is
    the bookings table's unique index; no existence query runs before the
    insert, since it would race with concurrent requests anyway.
    """

    def __init__(self, store: CatalogStore):
        self._store = store

    def create_booking(
        self,
        *,
        customer_email: Optional[str],
        service_id: Optional[str],
        booking_date: Any,
        price: Any,
    ) -> Booking:
        if not isinstance(service_id, str) or not service_id.strip():
            raise ServiceStoreValidationError("Missing required fields: service_id")
        service_id = service_id.strip()
        customer = normalize_email(customer_email)

        with self._store.transaction() as conn:
            service = self._store.fetch_service(conn, service_id)
        if service is None:
            raise ServiceStoreNotFoundError("Service not found")
        if customer and customer == normalize_email(service["provider_email"]):
            raise ServiceStorePermissionError("You cannot book your own service")
        if not customer:
            raise ServiceStoreValidationError("Missing required fields: user_email")

        booking = Booking(
            id=f"bk_{uuid4().hex[:12]}",
            user_email=customer,
            service_id=service_id,
            booking_date=parse_booking_date(booking_date),
            price=clean_price(price),
            created_at=utc_now(),
            updated_at=utc_now(),
        )
        try:
            with self._store.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO bookings (id, user_email, service_id, booking_date, price, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        booking.id,
                        booking.user_email,
                        booking.service_id,
                        booking.booking_date,
                        booking.price,
                        booking.created_at,
                        booking.updated_at,
                    ),
                )
        except ServiceStoreConflictError:
            logger.info("Duplicate booking rejected: service=%s date=%s", service_id, booking.booking_date)
            raise
        return booking

    def delete_booking(self, booking_id: str, *, requester_email: Optional[str]) -> None:
        with self._store.transaction() as conn:
            row = conn.execute("SELECT user_email FROM bookings WHERE id = ?", (booking_id,)).fetchone()
            if row is None:
                raise ServiceStoreNotFoundError("Booking not found")
            if normalize_email(requester_email) != row["user_email"]:
                raise ServiceStorePermissionError("Forbidden")
            conn.execute("DELETE FROM bookings WHERE id = ?", (booking_id,))

    def has_booking(self, user_email: Optional[str], service_id: str) -> bool:
        with self._store.transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM bookings WHERE user_email = ? AND service_id = ? LIMIT 1",
                (normalize_email(user_email), service_id),
            ).fetchone()
        return row is not None

    def list_bookings(self, user_email: Optional[str]) -> List[BookingView]:
        customer = normalize_email(user_email)
        if not customer:
            raise ServiceStoreValidationError("user_email required")
        with self._store.transaction() as conn:
            rows = conn.execute(
                """
                SELECT b.*,
                       s.id AS s_id,
                       s.name AS s_name,
                       s.image AS s_image,
                       s.provider_name AS s_provider_name,
                       s.provider_email AS s_provider_email,
                       s.price AS s_price
                FROM bookings b
                LEFT JOIN services s ON s.id = b.service_id
                WHERE b.user_email = ?
                ORDER BY b.created_at DESC, b.rowid DESC
                """,
                (customer,),
            ).fetchall()
        return [
            BookingView(
                id=row["id"],
                user_email=row["user_email"],
                service_id=row["service_id"],
                booking_date=row["booking_date"],
                price=float(row["price"]),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                service=(
                    ServiceSummary(
                        id=row["s_id"],
                        name=row["s_name"],
                        image=row["s_image"],
                        provider_name=row["s_provider_name"],
                        provider_email=row["s_provider_email"],
                        price=float(row["s_price"]),
                    )
                    if row["s_id"] is not None
                    else None
                ),
            )
            for row in rows
        ]


booking_ledger = BookingLedger(catalog_store)
