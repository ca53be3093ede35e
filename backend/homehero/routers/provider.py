from typing import Optional

from fastapi import APIRouter, Query

from homehero.models import ProviderAnalytics, ProviderSummary
from homehero.routers.errors import raise_store_http_error
from homehero.services.analytics import analytics_rollup
from homehero.services.errors import ServiceStoreError

router = APIRouter(prefix="/provider", tags=["provider"])


@router.get("/summary", response_model=ProviderSummary)
def provider_summary(email: Optional[str] = Query(default=None)):
    try:
        return analytics_rollup.provider_summary(email)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.get("/analytics", response_model=ProviderAnalytics)
def provider_analytics(email: Optional[str] = Query(default=None)):
    try:
        return ProviderAnalytics(series=analytics_rollup.monthly_rollup(email))
    except ServiceStoreError as exc:
        raise_store_http_error(exc)
