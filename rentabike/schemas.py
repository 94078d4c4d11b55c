# Pydantic models (request/response DTOs) used by the API layer.
# Keep models minimal and serializable; business rules live in the booking service.
from pydantic import BaseModel, Field, ConfigDict, field_serializer, field_validator
from typing import List, Optional, Union
from datetime import date, datetime, time
from decimal import Decimal

from .domain import BookingStatus


def _strip(v):
    # Trim surrounding whitespace before validation
    if isinstance(v, str):
        v = v.strip()
    return v


# Bikes
# Base attributes for a bike (shared by create/read)
class BikeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1)
    price_per_hour: Decimal = Field(Decimal("0"), ge=0)
    price_per_day: Decimal = Field(..., ge=0)
    image_url: str = Field(..., min_length=1, max_length=1024)
    available: bool = True
    features: List[str] = Field(default_factory=list)

    @field_validator("name", "type", "description", "image_url", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)


# Payload for creating a bike (admin)
class BikeCreate(BikeBase):
    pass


# Partial update payload (admin); unset fields are left untouched
class BikeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    price_per_hour: Optional[Decimal] = Field(None, ge=0)
    price_per_day: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=1024)
    available: Optional[bool] = None
    features: Optional[List[str]] = None


# Response shape when reading a bike from the API
class BikeRead(BaseModel):
    id: int
    name: str
    type: str
    description: str
    price_per_hour: float
    price_per_day: float
    image_url: Optional[str] = None
    available: bool
    features: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Public bike listing
class BikeListResponse(BaseModel):
    bikes: List[BikeRead]
    count: int


class BikeDeleteResponse(BaseModel):
    success: bool = True
    message: str
    deleted_id: int


# Bike attributes embedded in booking responses
class BikeSummary(BaseModel):
    id: int
    name: str
    type: str
    price_per_day: float
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# Bookings
# Request payload for creating a booking.
# Fields are loosely typed on purpose: the booking validator reports missing
# and malformed fields with its own error codes instead of a generic 422.
class BookingCreate(BaseModel):
    bike_id: Optional[Union[int, str]] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    pickup_time: Optional[str] = None
    dropoff_time: Optional[str] = None
    duration_hours: Optional[Union[float, str]] = None
    total_cost: Optional[Union[float, str]] = None
    special_requests: Optional[str] = None


# API response for a booking record, with derived pending-expiry fields
class BookingRead(BaseModel):
    id: int
    bike_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    start_date: date
    end_date: date
    pickup_time: Optional[time] = None
    dropoff_time: Optional[time] = None
    duration_hours: float
    total_cost: float
    status: BookingStatus
    special_requests: Optional[str] = None
    created_at: Optional[datetime] = None
    bike: Optional[BikeSummary] = None
    expires_at: Optional[datetime] = None
    is_expired: bool = False
    time_remaining: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    # Times go over the wire as 24-hour HH:MM, matching the request format
    @field_serializer("pickup_time", "dropoff_time")
    def format_time(self, v: Optional[time]) -> Optional[str]:
        return v.strftime("%H:%M") if v is not None else None


# Returned after creating a booking
class BookingCreateResponse(BaseModel):
    success: bool = True
    booking: BookingRead
    message: str


class BookingCancelResponse(BaseModel):
    success: bool = True
    message: str
    booking: BookingRead


# Admin status change; the service validates the value so bad input maps to a booking validation_error
class BookingStatusUpdate(BaseModel):
    status: str

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
        return v


# Admin pickup/dropoff edit (HH:MM, blank clears the time)
class BookingTimesUpdate(BaseModel):
    pickup_time: Optional[str] = None
    dropoff_time: Optional[str] = None


# Calendar days a bike is held by active bookings
class BookedDatesResponse(BaseModel):
    success: bool = True
    bike_id: int
    booked_dates: List[date]
    count: int


# Admin authentication
class AdminLoginRequest(BaseModel):
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenVerifyRequest(BaseModel):
    token: str = Field(..., min_length=1)


class TokenVerifyResponse(BaseModel):
    valid: bool
    admin: bool = False
