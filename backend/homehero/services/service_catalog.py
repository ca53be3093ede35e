import logging
import math
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from homehero.models import Service, ServiceListResponse
from homehero.services.catalog_store import (
    CatalogStore,
    catalog_store,
    clean_price,
    clean_text,
    normalize_email,
    utc_now,
)
from homehero.services.errors import (
    ServiceStoreConflictError,
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreValidationError,
)
from homehero.services.slugs import SlugAllocator, slug_allocator

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "category", "price", "description", "image")

SORT_ORDERS = {
    "priceAsc": "price ASC, rowid ASC",
    "priceDesc": "price DESC, rowid ASC",
    "ratingDesc": "rating_avg DESC, created_at DESC",
    "createdDesc": "created_at DESC, rowid DESC",
}

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50
DEFAULT_HIGHLIGHT_LIMIT = 6
MAX_HIGHLIGHT_LIMIT = 12
MAX_SQLITE_INTEGER = 2**63 - 1

SAMPLE_SERVICES = [
    {
        "name": "AC Repair & Service",
        "category": "Electrical",
        "price": 1200,
        "description": "Split/Window AC servicing, gas refill, and minor repairs.",
        "image": "https://images.unsplash.com/photo-1581093588401-16ecce3b9f6b?q=80&w=1200&auto=format&fit=crop",
        "provider_name": "CoolFix",
        "provider_email": "coolfix@demo.com",
    },
    {
        "name": "Deep Cleaning (2BHK)",
        "category": "Cleaning",
        "price": 3000,
        "description": "Full home deep cleaning with eco-friendly supplies.",
        "image": "https://images.unsplash.com/photo-1603715749720-5f28b4c81f01?q=80&w=1200&auto=format&fit=crop",
        "provider_name": "CleanPros",
        "provider_email": "clean@demo.com",
    },
    {
        "name": "Plumbing Fix",
        "category": "Plumbing",
        "price": 800,
        "description": "Leak fix, tap replacement, drain unclog.",
        "image": "https://images.unsplash.com/photo-1581578017423-3b9b6a9a62da?q=80&w=1200&auto=format&fit=crop",
        "provider_name": "PipeMasters",
        "provider_email": "plumb@demo.com",
    },
    {
        "name": "Electrician On-Demand",
        "category": "Electrical",
        "price": 600,
        "description": "Fan, light, socket, MCB, wiring and more.",
        "image": "https://images.unsplash.com/photo-1517048676732-d65bc937f952?q=80&w=1200&auto=format&fit=crop",
        "provider_name": "VoltCare",
        "provider_email": "electric@demo.com",
    },
]


def _clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if not limit or limit <= 0:
        return default
    return min(limit, maximum)


class ServiceCatalog:
    def __init__(self, store: CatalogStore, allocator: SlugAllocator):
        self._store = store
        self._allocator = allocator

    def create_service(
        self,
        *,
        provider_email: Optional[str],
        name: Optional[str],
        category: Optional[str],
        price: Any,
        description: Optional[str],
        image: Optional[str],
        provider_name: Optional[str] = None,
    ) -> Service:
        cleaned = {
            "name": clean_text(name, "name"),
            "category": clean_text(category, "category"),
            "price": clean_price(price),
            "description": clean_text(description, "description"),
            "image": clean_text(image, "image"),
        }
        owner = normalize_email(provider_email)
        if not owner:
            raise ServiceStoreValidationError("Missing required fields: provider_email")
        display_name = provider_name.strip() if isinstance(provider_name, str) and provider_name.strip() else "Unknown"

        service_id = f"svc_{uuid4().hex[:12]}"
        now = utc_now()

        def insert(slug: str) -> Service:
            with self._store.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO services (
                        id, name, slug, category, price, description, image,
                        provider_name, provider_email, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        service_id,
                        cleaned["name"],
                        slug,
                        cleaned["category"],
                        cleaned["price"],
                        cleaned["description"],
                        cleaned["image"],
                        display_name,
                        owner,
                        now,
                        now,
                    ),
                )
                row = self._store.fetch_service(conn, service_id)
            return self._store.row_to_service(row)

        service = self._allocator.allocate(cleaned["name"], insert)
        logger.info("Service %s created with slug %s", service.id, service.slug)
        return service

    def get_service(self, service_id: str) -> Service:
        with self._store.transaction() as conn:
            cursor = conn.execute("UPDATE services SET views = views + 1 WHERE id = ?", (service_id,))
            if cursor.rowcount == 0:
                raise ServiceStoreNotFoundError("Service not found")
            row = self._store.fetch_service(conn, service_id)
        return self._store.row_to_service(row)

    def get_service_by_slug(self, slug: str) -> Service:
        with self._store.transaction() as conn:
            cursor = conn.execute("UPDATE services SET views = views + 1 WHERE slug = ?", (slug,))
            if cursor.rowcount == 0:
                raise ServiceStoreNotFoundError("Service not found")
            row = conn.execute("SELECT * FROM services WHERE slug = ?", (slug,)).fetchone()
        return self._store.row_to_service(row)

    def _load_owned(self, service_id: str, actor_email: Optional[str]) -> Service:
        with self._store.transaction() as conn:
            row = self._store.fetch_service(conn, service_id)
        if row is None:
            raise ServiceStoreNotFoundError("Service not found")
        if normalize_email(actor_email) != row["provider_email"]:
            raise ServiceStorePermissionError("Forbidden: not owner")
        return self._store.row_to_service(row)

    def update_service(self, service_id: str, *, actor_email: Optional[str], changes: Dict[str, Any]) -> Service:
        current = self._load_owned(service_id, actor_email)

        updates: Dict[str, Any] = {}
        for field in UPDATABLE_FIELDS:
            if field not in changes:
                continue
            if field == "price":
                updates[field] = clean_price(changes[field])
            else:
                updates[field] = clean_text(changes[field], field)
        if not updates:
            return current

        def apply(slug: Optional[str]) -> Service:
            fields = dict(updates)
            if slug is not None:
                fields["slug"] = slug
            fields["updated_at"] = utc_now()
            assignments = ", ".join(f"{column} = ?" for column in fields)
            with self._store.transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE services SET {assignments} WHERE id = ?",
                    (*fields.values(), service_id),
                )
                if cursor.rowcount == 0:
                    raise ServiceStoreNotFoundError("Service not found")
                row = self._store.fetch_service(conn, service_id)
            return self._store.row_to_service(row)

        if "name" in updates:
            return self._allocator.allocate(updates["name"], apply, exclude_id=service_id)
        return apply(None)

    def delete_service(self, service_id: str, *, actor_email: Optional[str]) -> None:
        self._load_owned(service_id, actor_email)
        with self._store.transaction() as conn:
            conn.execute("DELETE FROM services WHERE id = ?", (service_id,))
        logger.info("Service %s deleted", service_id)

    def list_services(
        self,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        provider_email: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> ServiceListResponse:
        if sort and sort not in SORT_ORDERS:
            raise ServiceStoreValidationError(f"Invalid sort value. Allowed: {', '.join(SORT_ORDERS)}")
        if page < 1:
            raise ServiceStoreValidationError("page must be 1 or greater")
        page_size = _clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        offset = (page - 1) * page_size
        if offset > MAX_SQLITE_INTEGER:
            raise ServiceStoreValidationError("page is out of range")

        clauses: List[str] = []
        params: List[Any] = []
        if provider_email:
            clauses.append("provider_email = ?")
            params.append(normalize_email(provider_email))
        if category:
            clauses.append("category = ?")
            params.append(category)
        if search and search.strip():
            term = search.strip().casefold()
            clauses.append("(instr(casefold(name), ?) > 0 OR instr(casefold(category), ?) > 0)")
            params.extend([term, term])
        if min_price is not None:
            clauses.append("price >= ?")
            params.append(min_price)
        if max_price is not None:
            clauses.append("price <= ?")
            params.append(max_price)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        order = SORT_ORDERS.get(sort or "", "rowid ASC")
        with self._store.transaction() as conn:
            total = int(conn.execute(f"SELECT COUNT(*) AS total FROM services{where}", tuple(params)).fetchone()["total"])
            rows = conn.execute(
                f"SELECT * FROM services{where} ORDER BY {order} LIMIT ? OFFSET ?",
                (*params, page_size, offset),
            ).fetchall()

        return ServiceListResponse(
            items=[self._store.row_to_service(row) for row in rows],
            total=total,
            page=page,
            pages=math.ceil(total / page_size),
        )

    def _highlights(self, order: str, limit: Optional[int]) -> List[Service]:
        size = _clamp_limit(limit, DEFAULT_HIGHLIGHT_LIMIT, MAX_HIGHLIGHT_LIMIT)
        with self._store.transaction() as conn:
            rows = conn.execute(f"SELECT * FROM services ORDER BY {order} LIMIT ?", (size,)).fetchall()
        return [self._store.row_to_service(row) for row in rows]

    def top_services(self, limit: Optional[int] = None) -> List[Service]:
        return self._highlights("rating_avg DESC, created_at DESC", limit)

    def trending(self, limit: Optional[int] = None) -> List[Service]:
        return self._highlights("views DESC, created_at DESC", limit)

    def seed_samples(self) -> Tuple[int, int]:
        if self._store.count_services() > 0:
            raise ServiceStoreConflictError("Catalog already has data")
        created = [self.create_service(**sample) for sample in SAMPLE_SERVICES]
        return len(created), self._store.count_services()


service_catalog = ServiceCatalog(catalog_store, slug_allocator)
