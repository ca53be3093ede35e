import json
import logging
import math
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from homehero.models import Review, Service
from homehero.services.errors import (
    ServiceStoreConflictError,
    ServiceStoreUnavailableError,
    ServiceStoreValidationError,
    SlugTakenError,
)

logger = logging.getLogger(__name__)


def normalize_email(value: Optional[str]) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def clean_text(value: Any, field: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ServiceStoreValidationError(f"Missing required fields: {field}")
    return text


def clean_price(value: Any, field: str = "price") -> float:
    if value is None or value == "":
        raise ServiceStoreValidationError(f"Missing required fields: {field}")
    if isinstance(value, bool):
        raise ServiceStoreValidationError(f"{field} must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise ServiceStoreValidationError(f"{field} must be a number") from exc
    if not math.isfinite(price) or price < 0:
        raise ServiceStoreValidationError(f"{field} must be greater than or equal to 0")
    return price


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if isinstance(value, str) else value


@dataclass
class CatalogStore:
    """SQLite-backed document collections for services, bookings and favorites.

    Every operation opens its own connection, so concurrent callers only
    share what SQLite itself serializes: single statements are atomic and
    unique indexes are checked at write time. Components write their own
    SQL through :meth:`transaction`; this class owns the schema and the
    translation of driver errors into store errors.
    """

    db_path: str
    busy_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout_seconds, check_same_thread=False)
        except sqlite3.Error as exc:
            raise ServiceStoreUnavailableError("Catalog store unavailable") from exc
        conn.row_factory = sqlite3.Row
        # SQLite lower() only folds ASCII.
        conn.create_function("casefold", 1, casefold, deterministic=True)
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError as exc:
            raise self._translate_integrity_error(exc) from exc
        except sqlite3.OperationalError as exc:
            logger.warning("Catalog store operation failed: %s", exc)
            raise ServiceStoreUnavailableError("Catalog store unavailable") from exc
        except sqlite3.DatabaseError as exc:
            logger.exception("Catalog store database error")
            raise ServiceStoreUnavailableError("Catalog store unavailable") from exc
        finally:
            conn.close()

    def _translate_integrity_error(self, exc: sqlite3.IntegrityError) -> Exception:
        message = str(exc)
        if "CHECK constraint" in message:
            return ServiceStoreValidationError("price must be greater than or equal to 0")
        if "services.slug" in message:
            return SlugTakenError("Slug already taken")
        if "bookings." in message:
            return ServiceStoreConflictError("Already booked this date")
        if "favorites." in message:
            return ServiceStoreConflictError("Already in favorites")
        return ServiceStoreConflictError(message)

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS services (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        slug TEXT UNIQUE,
                        category TEXT NOT NULL,
                        price REAL NOT NULL CHECK (price >= 0),
                        description TEXT NOT NULL,
                        image TEXT NOT NULL,
                        provider_name TEXT NOT NULL,
                        provider_email TEXT NOT NULL,
                        rating_avg REAL NOT NULL DEFAULT 0,
                        reviews_json TEXT NOT NULL DEFAULT '[]',
                        views INTEGER NOT NULL DEFAULT 0,
                        version INTEGER NOT NULL DEFAULT 0,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS bookings (
                        id TEXT PRIMARY KEY,
                        user_email TEXT NOT NULL,
                        service_id TEXT NOT NULL,
                        booking_date TEXT NOT NULL,
                        price REAL NOT NULL CHECK (price >= 0),
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        UNIQUE (user_email, service_id, booking_date)
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS favorites (
                        id TEXT PRIMARY KEY,
                        user_email TEXT NOT NULL,
                        service_id TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        UNIQUE (user_email, service_id)
                    )
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_services_provider_email ON services (provider_email)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_services_price ON services (price)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_services_rating_avg ON services (rating_avg)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_services_views ON services (views)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_bookings_service_id ON bookings (service_id)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_bookings_booking_date ON bookings (booking_date)")
        except sqlite3.Error as exc:
            raise ServiceStoreUnavailableError("Catalog store unavailable") from exc
        finally:
            conn.close()
        logger.info("Catalog store ready at %s", self.db_path)

    def fetch_service(self, conn: sqlite3.Connection, service_id: str) -> Optional[sqlite3.Row]:
        return conn.execute("SELECT * FROM services WHERE id = ?", (service_id,)).fetchone()

    def count_services(self) -> int:
        with self.transaction() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM services").fetchone()
        return int(row["total"])

    def split_reviews(self, raw: Optional[str], service_id: Optional[str] = None) -> Tuple[List[Review], List[Any]]:
        """Decode a reviews payload into valid reviews and unreadable entries.

        Unreadable list entries are returned as-is so a rewrite of the
        payload can carry them forward instead of dropping them.
        """
        try:
            value = json.loads(raw or "[]")
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable reviews payload on service %s", service_id)
            return [], []
        if not isinstance(value, list):
            logger.warning("Discarding non-list reviews payload on service %s", service_id)
            return [], []
        reviews: List[Review] = []
        unreadable: List[Any] = []
        for item in value:
            try:
                reviews.append(Review.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed review entry on service %s", service_id)
                unreadable.append(item)
        return reviews, unreadable

    def load_reviews(self, raw: Optional[str], service_id: Optional[str] = None) -> List[Review]:
        return self.split_reviews(raw, service_id)[0]

    def dump_reviews(self, reviews: List[Review], unreadable: Sequence[Any] = ()) -> str:
        return json.dumps([review.model_dump() for review in reviews] + list(unreadable))

    def row_to_service(self, row: sqlite3.Row) -> Service:
        return Service(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            category=row["category"],
            price=float(row["price"]),
            description=row["description"],
            image=row["image"],
            provider_name=row["provider_name"],
            provider_email=row["provider_email"],
            rating_avg=float(row["rating_avg"] or 0),
            reviews=self.load_reviews(row["reviews_json"], row["id"]),
            views=int(row["views"] or 0),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


default_db = str(Path(__file__).resolve().parents[2] / "data" / "homehero.sqlite3")
catalog_store = CatalogStore(db_path=os.getenv("HOMEHERO_DB_PATH", default_db))
