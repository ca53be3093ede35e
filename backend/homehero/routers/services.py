from typing import Optional

from fastapi import APIRouter, Header, Query

from homehero.auth import resolve_actor_email
from homehero.models import (
    DeleteResult,
    ReviewRequest,
    ReviewResult,
    Service,
    ServiceCollection,
    ServiceCreateRequest,
    ServiceListResponse,
    ServiceUpdateRequest,
)
from homehero.routers.errors import raise_store_http_error
from homehero.services.errors import ServiceStoreError
from homehero.services.review_aggregator import review_aggregator
from homehero.services.service_catalog import service_catalog

router = APIRouter(tags=["services"])
public_router = APIRouter(tags=["services"])


@router.get("", response_model=ServiceListResponse)
def list_services(
    search: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    provider_email: Optional[str] = Query(default=None),
    min_price: Optional[float] = Query(default=None),
    max_price: Optional[float] = Query(default=None),
    sort: Optional[str] = Query(default=None),
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
):
    try:
        return service_catalog.list_services(
            search=search,
            category=category,
            provider_email=provider_email,
            min_price=min_price,
            max_price=max_price,
            sort=sort,
            page=page,
            limit=limit,
        )
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.post("", response_model=Service, status_code=201)
def create_service(
    request: ServiceCreateRequest,
    authorization: Optional[str] = Header(default=None),
):
    provider_email = resolve_actor_email(request.provider_email, authorization)
    try:
        return service_catalog.create_service(
            provider_email=provider_email,
            name=request.name,
            category=request.category,
            price=request.price,
            description=request.description,
            image=request.image,
            provider_name=request.provider_name,
        )
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.get("/{service_id}", response_model=Service)
def get_service(service_id: str):
    try:
        return service_catalog.get_service(service_id)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.patch("/{service_id}", response_model=Service)
def update_service(
    service_id: str,
    request: ServiceUpdateRequest,
    provider_email: Optional[str] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
):
    actor_email = resolve_actor_email(provider_email or request.provider_email, authorization)
    changes = request.model_dump(exclude_unset=True)
    changes.pop("provider_email", None)
    try:
        return service_catalog.update_service(service_id, actor_email=actor_email, changes=changes)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.delete("/{service_id}", response_model=DeleteResult)
def delete_service(
    service_id: str,
    provider_email: Optional[str] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
):
    actor_email = resolve_actor_email(provider_email, authorization)
    try:
        service_catalog.delete_service(service_id, actor_email=actor_email)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)
    return DeleteResult()


@router.post("/{service_id}/reviews", response_model=ReviewResult, status_code=201)
def submit_review(
    service_id: str,
    request: ReviewRequest,
    authorization: Optional[str] = Header(default=None),
):
    reviewer_email = resolve_actor_email(request.user_email, authorization)
    try:
        return review_aggregator.submit_review(
            service_id,
            reviewer_email=reviewer_email,
            rating=request.rating,
            comment=request.comment,
        )
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@public_router.get("/s/{slug}", response_model=Service)
def get_service_by_slug(slug: str):
    try:
        return service_catalog.get_service_by_slug(slug)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@public_router.get("/top-services", response_model=ServiceCollection)
def top_services(limit: Optional[int] = Query(default=None)):
    try:
        return ServiceCollection(items=service_catalog.top_services(limit=limit))
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@public_router.get("/trending", response_model=ServiceCollection)
def trending(limit: Optional[int] = Query(default=None)):
    try:
        return ServiceCollection(items=service_catalog.trending(limit=limit))
    except ServiceStoreError as exc:
        raise_store_http_error(exc)
