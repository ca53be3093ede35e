from typing import NoReturn

from fastapi import HTTPException

from homehero.services.errors import (
    ServiceStoreConflictError,
    ServiceStoreError,
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreUnavailableError,
    SlugAllocationExhaustedError,
)


def raise_store_http_error(exc: ServiceStoreError) -> NoReturn:
    if isinstance(exc, ServiceStoreNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ServiceStorePermissionError):
        raise HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, ServiceStoreConflictError):
        raise HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ServiceStoreUnavailableError):
        raise HTTPException(status_code=503, detail=str(exc), headers={"Retry-After": "1"})
    if isinstance(exc, SlugAllocationExhaustedError):
        raise HTTPException(status_code=500, detail=str(exc))
    raise HTTPException(status_code=400, detail=str(exc))
