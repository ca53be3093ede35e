from typing import Optional

from fastapi import APIRouter, Header, Query, Response

from homehero.auth import resolve_actor_email
from homehero.models import DeleteResult, Favorite, FavoriteListResponse, FavoriteRequest
from homehero.routers.errors import raise_store_http_error
from homehero.services.errors import ServiceStoreError
from homehero.services.favorites import favorite_book

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.post("", response_model=Favorite, status_code=201)
def add_favorite(
    request: FavoriteRequest,
    response: Response,
    authorization: Optional[str] = Header(default=None),
):
    user_email = resolve_actor_email(request.user_email, authorization)
    try:
        favorite, created = favorite_book.add_favorite(user_email=user_email, service_id=request.service_id)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)
    if not created:
        response.status_code = 200
    return favorite


@router.get("", response_model=FavoriteListResponse)
def list_favorites(
    user_email: Optional[str] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
):
    owner_email = resolve_actor_email(user_email, authorization)
    try:
        return FavoriteListResponse(items=favorite_book.list_favorites(owner_email))
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.delete("/{favorite_id}", response_model=DeleteResult)
def delete_favorite(
    favorite_id: str,
    user_email: Optional[str] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
):
    requester_email = resolve_actor_email(user_email, authorization)
    try:
        favorite_book.delete_favorite(favorite_id, requester_email=requester_email)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)
    return DeleteResult()
