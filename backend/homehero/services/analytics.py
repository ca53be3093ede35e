from typing import List, Optional

from homehero.models import MonthlyRollupEntry, ProviderSummary
from homehero.services.catalog_store import CatalogStore, catalog_store, normalize_email, round2
from homehero.services.errors import ServiceStoreValidationError


class AnalyticsRollup:
    """Provider-facing aggregates computed from the live booking ledger.

    Nothing is cached: every call regroups the bookings that exist when it
    runs.
    """

    def __init__(self, store: CatalogStore):
        self._store = store

    def _provider(self, provider_email: Optional[str]) -> str:
        provider = normalize_email(provider_email)
        if not provider:
            raise ServiceStoreValidationError("email required")
        return provider

    def monthly_rollup(self, provider_email: Optional[str]) -> List[MonthlyRollupEntry]:
        provider = self._provider(provider_email)
        with self._store.transaction() as conn:
            service_ids = [
                row["id"]
                for row in conn.execute("SELECT id FROM services WHERE provider_email = ?", (provider,)).fetchall()
            ]
            if not service_ids:
                return []
            placeholders = ", ".join("?" for _ in service_ids)
            rows = conn.execute(
                f"""
                SELECT strftime('%Y-%m', booking_date) AS month,
                       COUNT(*) AS booking_count,
                       COALESCE(SUM(price), 0) AS revenue
                FROM bookings
                WHERE service_id IN ({placeholders})
                GROUP BY month
                ORDER BY month ASC
                """,
                service_ids,
            ).fetchall()
        return [
            MonthlyRollupEntry(
                month=row["month"],
                booking_count=int(row["booking_count"]),
                revenue=round2(row["revenue"]),
            )
            for row in rows
        ]

    def provider_summary(self, provider_email: Optional[str]) -> ProviderSummary:
        provider = self._provider(provider_email)
        with self._store.transaction() as conn:
            services = conn.execute(
                "SELECT COUNT(*) AS total, AVG(rating_avg) AS avg_rating FROM services WHERE provider_email = ?",
                (provider,),
            ).fetchone()
            bookings = conn.execute(
                """
                SELECT COUNT(*) AS total, COALESCE(SUM(price), 0) AS revenue
                FROM bookings
                WHERE service_id IN (SELECT id FROM services WHERE provider_email = ?)
                """,
                (provider,),
            ).fetchone()
        return ProviderSummary(
            total_services=int(services["total"]),
            total_bookings=int(bookings["total"]),
            total_revenue=round2(bookings["revenue"]),
            avg_rating=round2(services["avg_rating"] or 0),
        )


analytics_rollup = AnalyticsRollup(catalog_store)
