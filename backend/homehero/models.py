from typing import Literal, Optional

from pydantic import BaseModel, Field


class Review(BaseModel):
    user_email: str
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    date: str


class Service(BaseModel):
    id: str
    name: str
    slug: Optional[str] = None
    category: str
    price: float = Field(ge=0)
    description: str
    image: str
    provider_name: str
    provider_email: str
    rating_avg: float = 0.0
    reviews: list[Review] = Field(default_factory=list)
    views: int = 0
    created_at: str
    updated_at: str


class ServiceSummary(BaseModel):
    """Read-time projection of a service joined onto bookings."""

    id: str
    name: str
    image: str
    provider_name: str
    provider_email: str
    price: float


class ServiceCreateRequest(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    image: Optional[str] = None
    provider_name: str = "Unknown"
    provider_email: Optional[str] = None


class ServiceUpdateRequest(BaseModel):
    provider_email: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    image: Optional[str] = None


class ServiceListResponse(BaseModel):
    items: list[Service]
    total: int
    page: int
    pages: int


class ServiceCollection(BaseModel):
    items: list[Service]


class ReviewRequest(BaseModel):
    user_email: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


class ReviewResult(BaseModel):
    ok: bool = True
    rating_avg: float
    reviews: list[Review]


class BookingRequest(BaseModel):
    user_email: Optional[str] = None
    service_id: Optional[str] = None
    booking_date: Optional[str] = None
    price: Optional[float] = None


class Booking(BaseModel):
    id: str
    user_email: str
    service_id: str
    booking_date: str
    price: float
    created_at: str
    updated_at: str


class BookingView(Booking):
    service: Optional[ServiceSummary] = None


class BookingListResponse(BaseModel):
    items: list[BookingView]


class FavoriteRequest(BaseModel):
    user_email: Optional[str] = None
    service_id: Optional[str] = None


class Favorite(BaseModel):
    id: str
    user_email: str
    service_id: str
    created_at: str


class FavoriteView(Favorite):
    service: Optional[Service] = None


class FavoriteListResponse(BaseModel):
    items: list[FavoriteView]


class DeleteResult(BaseModel):
    deleted: bool = True


class MonthlyRollupEntry(BaseModel):
    month: str
    booking_count: int
    revenue: float


class ProviderAnalytics(BaseModel):
    series: list[MonthlyRollupEntry]


class ProviderSummary(BaseModel):
    total_services: int
    total_bookings: int
    total_revenue: float
    avg_rating: float


class StoreStatus(BaseModel):
    status: Literal["ready"] = "ready"
    services: int


class AuthLoginRequest(BaseModel):
    email: str
    password: str = "homehero-demo"


class AuthLoginResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    email: str
    expires_at: str


class AuthMeResponse(BaseModel):
    email: str
