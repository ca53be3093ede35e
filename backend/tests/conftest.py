import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# The app module builds its store at import time; point it at a throwaway file.
os.environ["HOMEHERO_DB_PATH"] = os.path.join(tempfile.mkdtemp(prefix="homehero-tests-"), "catalog.sqlite3")
os.environ.pop("AUTH_REQUIRED", None)
os.environ.pop("FIREBASE_CREDENTIALS_PATH", None)

from homehero.services.analytics import AnalyticsRollup  # noqa: E402
from homehero.services.booking_ledger import BookingLedger  # noqa: E402
from homehero.services.catalog_store import CatalogStore  # noqa: E402
from homehero.services.favorites import FavoriteBook  # noqa: E402
from homehero.services.review_aggregator import ReviewAggregator  # noqa: E402
from homehero.services.service_catalog import ServiceCatalog  # noqa: E402
from homehero.services.slugs import SlugAllocator  # noqa: E402


@pytest.fixture
def store(tmp_path):
    return CatalogStore(db_path=str(tmp_path / "catalog.sqlite3"))


@pytest.fixture
def allocator(store):
    return SlugAllocator(store)


@pytest.fixture
def catalog(store, allocator):
    return ServiceCatalog(store, allocator)


@pytest.fixture
def ledger(store):
    return BookingLedger(store)


@pytest.fixture
def reviews(store, ledger):
    return ReviewAggregator(store, ledger)


@pytest.fixture
def analytics(store):
    return AnalyticsRollup(store)


@pytest.fixture
def favorites(store):
    return FavoriteBook(store)


@pytest.fixture
def make_service(catalog):
    def _make(name="Deep Cleaning", provider_email="clean@demo.com", price=3000, category="Cleaning"):
        return catalog.create_service(
            provider_email=provider_email,
            name=name,
            category=category,
            price=price,
            description="Full home deep cleaning with eco-friendly supplies.",
            image="https://example.com/cleaning.jpg",
            provider_name="CleanPros",
        )

    return _make
