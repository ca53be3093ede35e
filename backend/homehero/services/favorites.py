from typing import List, Optional, Tuple
from uuid import uuid4

from homehero.models import Favorite, FavoriteView
from homehero.services.catalog_store import CatalogStore, catalog_store, normalize_email, utc_now
from homehero.services.errors import (
    ServiceStoreConflictError,
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreValidationError,
)


def _row_to_favorite(row) -> Favorite:
    return Favorite(
        id=row["id"],
        user_email=row["user_email"],
        service_id=row["service_id"],
        created_at=row["created_at"],
    )


class FavoriteBook:
    def __init__(self, store: CatalogStore):
        self._store = store

    def add_favorite(self, *, user_email: Optional[str], service_id: Optional[str]) -> Tuple[Favorite, bool]:
        """Bookmark a service; returns the favorite and whether it was new."""
        if not isinstance(service_id, str) or not service_id.strip():
            raise ServiceStoreValidationError("service_id required")
        service_id = service_id.strip()
        owner = normalize_email(user_email)
        if not owner:
            raise ServiceStoreValidationError("Missing required fields: user_email")

        favorite = Favorite(id=f"fav_{uuid4().hex[:12]}", user_email=owner, service_id=service_id, created_at=utc_now())
        try:
            with self._store.transaction() as conn:
                if self._store.fetch_service(conn, service_id) is None:
                    raise ServiceStoreNotFoundError("Service not found")
                conn.execute(
                    "INSERT INTO favorites (id, user_email, service_id, created_at) VALUES (?, ?, ?, ?)",
                    (favorite.id, favorite.user_email, favorite.service_id, favorite.created_at),
                )
            return favorite, True
        except ServiceStoreConflictError:
            with self._store.transaction() as conn:
                row = conn.execute(
                    "SELECT * FROM favorites WHERE user_email = ? AND service_id = ?",
                    (owner, service_id),
                ).fetchone()
            if row is None:
                raise
            return _row_to_favorite(row), False

    def list_favorites(self, user_email: Optional[str]) -> List[FavoriteView]:
        owner = normalize_email(user_email)
        if not owner:
            raise ServiceStoreValidationError("user_email required")
        with self._store.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM favorites WHERE user_email = ? ORDER BY created_at DESC, rowid DESC",
                (owner,),
            ).fetchall()
            service_rows = conn.execute(
                "SELECT * FROM services WHERE id IN (SELECT service_id FROM favorites WHERE user_email = ?)",
                (owner,),
            ).fetchall()
        services = {row["id"]: self._store.row_to_service(row) for row in service_rows}
        return [
            FavoriteView(**_row_to_favorite(row).model_dump(), service=services.get(row["service_id"]))
            for row in rows
        ]

    def delete_favorite(self, favorite_id: str, *, requester_email: Optional[str]) -> None:
        with self._store.transaction() as conn:
            row = conn.execute("SELECT user_email FROM favorites WHERE id = ?", (favorite_id,)).fetchone()
            if row is None:
                raise ServiceStoreNotFoundError("Favorite not found")
            if normalize_email(requester_email) != row["user_email"]:
                raise ServiceStorePermissionError("Forbidden")
            conn.execute("DELETE FROM favorites WHERE id = ?", (favorite_id,))


favorite_book = FavoriteBook(catalog_store)
