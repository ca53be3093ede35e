from typing import Optional

from fastapi import APIRouter, Header, Query

from homehero.auth import resolve_actor_email
from homehero.models import Booking, BookingListResponse, BookingRequest, DeleteResult
from homehero.routers.errors import raise_store_http_error
from homehero.services.booking_ledger import booking_ledger
from homehero.services.errors import ServiceStoreError

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=Booking, status_code=201)
def create_booking(
    request: BookingRequest,
    authorization: Optional[str] = Header(default=None),
):
    customer_email = resolve_actor_email(request.user_email, authorization)
    try:
        return booking_ledger.create_booking(
            customer_email=customer_email,
            service_id=request.service_id,
            booking_date=request.booking_date,
            price=request.price,
        )
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.get("", response_model=BookingListResponse)
def list_bookings(
    user_email: Optional[str] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
):
    customer_email = resolve_actor_email(user_email, authorization)
    try:
        return BookingListResponse(items=booking_ledger.list_bookings(customer_email))
    except ServiceStoreError as exc:
        raise_store_http_error(exc)


@router.delete("/{booking_id}", response_model=DeleteResult)
def delete_booking(
    booking_id: str,
    user_email: Optional[str] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
):
    requester_email = resolve_actor_email(user_email, authorization)
    try:
        booking_ledger.delete_booking(booking_id, requester_email=requester_email)
    except ServiceStoreError as exc:
        raise_store_http_error(exc)
    return DeleteResult()
