import logging
import re
from typing import Callable, Optional, TypeVar

from homehero.services.catalog_store import CatalogStore, catalog_store
from homehero.services.errors import SlugAllocationExhaustedError, SlugTakenError

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 60
MAX_ALLOCATION_ATTEMPTS = 1000
FALLBACK_SLUG_BASE = "service"

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_RUN = re.compile(r"\s+")

T = TypeVar("T")


def slugify(name: Optional[str]) -> str:
    """Derive a URL-safe slug: ``"Deep Cleaning (2BHK)"`` -> ``"deep-cleaning-2bhk"``."""
    if not isinstance(name, str):
        return ""
    text = _DISALLOWED_CHARS.sub("", name.lower()).strip()
    text = _WHITESPACE_RUN.sub("-", text)
    return text[:MAX_SLUG_LENGTH].rstrip("-")


def slug_candidate(base: str, attempt: int) -> str:
    if attempt <= 1:
        return base
    suffix = f"-{attempt}"
    head = base[: MAX_SLUG_LENGTH - len(suffix)].rstrip("-") or FALLBACK_SLUG_BASE
    return f"{head}{suffix}"


class SlugAllocator:
    """Hands out collection-wide unique slugs.

    The occupancy probe only saves round trips. Two allocators can both see
    a candidate as free, so the caller's ``write`` must insert or update the
    slug under the store's unique index; when the index rejects it the
    allocator moves on to the next suffix.
    """

    def __init__(self, store: CatalogStore, max_attempts: int = MAX_ALLOCATION_ATTEMPTS):
        self._store = store
        self._max_attempts = max_attempts

    def is_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        with self._store.transaction() as conn:
            if exclude_id:
                row = conn.execute(
                    "SELECT 1 FROM services WHERE slug = ? AND id != ? LIMIT 1",
                    (slug, exclude_id),
                ).fetchone()
            else:
                row = conn.execute("SELECT 1 FROM services WHERE slug = ? LIMIT 1", (slug,)).fetchone()
        return row is not None

    def allocate(self, name: Optional[str], write: Callable[[str], T], exclude_id: Optional[str] = None) -> T:
        base = slugify(name) or FALLBACK_SLUG_BASE
        for attempt in range(1, self._max_attempts + 1):
            slug = slug_candidate(base, attempt)
            if self.is_taken(slug, exclude_id=exclude_id):
                continue
            try:
                return write(slug)
            except SlugTakenError:
                logger.warning("Slug %s claimed by a concurrent writer, trying next suffix", slug)
        logger.error("Slug allocation for %r exhausted after %d attempts", base, self._max_attempts)
        raise SlugAllocationExhaustedError(f"Could not allocate a unique slug for '{base}'")


slug_allocator = SlugAllocator(catalog_store)
