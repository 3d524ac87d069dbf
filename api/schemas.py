"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.entities import Reservation, PackageResource, RoomResource, Hotel, Destination
from domain.value_objects import RefundQuote


class CamelModel(BaseModel):
    """Base DTO speaking camelCase on the wire"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class PackageBookingRequest(CamelModel):
    """Book seats on a travel package"""
    package_id: UUID
    total_persons: int = 0
    card_last4: Optional[str] = Field(None, max_length=4)


class RoomBookingRequest(CamelModel):
    """Book rooms of one room type over [checkIn, checkOut)"""
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    rooms: int = 0
    total_guests: int = 0
    # informational, the server prices the booking itself
    total_price: Optional[Decimal] = None
    customer_name: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    card_last4: Optional[str] = Field(None, max_length=4)


class ReservationResponse(CamelModel):
    """Reservation summary DTO"""
    reservation_id: UUID
    transaction_id: str
    resource_id: UUID
    resource_kind: str
    resource_name: Optional[str] = None
    hotel_name: Optional[str] = None
    owner_email: Optional[str] = None
    quantity: int
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    total_guests: Optional[int] = None
    price_total: Decimal
    customer_name: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    status: str
    created_at: datetime
    canceled_at: Optional[datetime] = None
    canceled_by: Optional[str] = None
    version: int

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "ReservationResponse":
        stay = reservation.date_range
        return cls(
            reservation_id=reservation.reservation_id,
            transaction_id=reservation.transaction_id,
            resource_id=reservation.resource_id,
            resource_kind=reservation.resource_kind.value,
            resource_name=reservation.resource_name,
            hotel_name=reservation.hotel_name,
            owner_email=reservation.owner_email,
            quantity=reservation.quantity,
            check_in=stay.check_in if stay else None,
            check_out=stay.check_out if stay else None,
            total_guests=reservation.total_guests,
            price_total=reservation.price_total,
            customer_name=reservation.customer_name,
            id_type=reservation.id_type,
            id_number=reservation.id_number,
            status=reservation.status.value,
            created_at=reservation.created_at,
            canceled_at=reservation.canceled_at,
            canceled_by=reservation.canceled_by.value if reservation.canceled_by else None,
            version=reservation.version,
        )


class PackageBookingsResponse(CamelModel):
    """Bookings held against one package"""
    package_id: UUID
    package_name: Optional[str] = None
    booking_deadline: Optional[date] = None
    total_persons: int
    bookings: List[ReservationResponse]


class RoomOccupancyResponse(CamelModel):
    """Occupancy of one room type"""
    room_id: UUID
    room_name: Optional[str] = None
    total_rooms: int
    active_bookings: int
    next_available_date: date


class AvailabilityResponse(CamelModel):
    """Remaining capacity over a stay"""
    hotel_id: UUID
    room_id: Optional[UUID] = None
    check_in: date
    check_out: date
    remaining: int


class RefundQuoteResponse(CamelModel):
    """Advisory refund breakdown"""
    reservation_id: UUID
    fee_percentage: Decimal
    fee: Decimal
    refund: Decimal
    non_refundable: bool

    @classmethod
    def from_quote(cls, reservation_id: UUID, quote: RefundQuote) -> "RefundQuoteResponse":
        return cls(reservation_id=reservation_id, **quote.model_dump())


class PackageSummary(CamelModel):
    """Public package listing entry"""
    package_id: UUID
    name: Optional[str] = None
    location: Optional[str] = None
    base_price: Decimal
    active: bool
    booking_deadline: Optional[date] = None


# ============================================================================
# PROFILE SCHEMAS
# ============================================================================

class EligibilityPayload(CamelModel):
    """Identity fields required before booking a package"""
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    full_name: Optional[str] = None


class ProfileResponse(EligibilityPayload):
    username: str
    email: Optional[str] = None
    complete: bool


# ============================================================================
# ADMIN CHANNEL ITEMS
# ============================================================================

def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


class ItineraryItem(CamelModel):
    day_number: int = 1
    title: Optional[str] = None
    subtitle: Optional[str] = None

    @field_validator('day_number', mode='before')
    @classmethod
    def at_least_day_one(cls, v):
        if v is None or int(v) <= 0:
            return 1
        return v


class PackageItem(CamelModel):
    """Partial package payload. Only keys present are applied."""
    name: Optional[str] = None
    location: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    active: Optional[bool] = None
    booking_deadline: Optional[date] = None
    overview: Optional[str] = None
    location_points: Optional[str] = None
    timing: Optional[str] = None
    group_size: Optional[str] = None
    dest_image_url: Optional[str] = None
    hotel_image_url: Optional[str] = None
    image1: Optional[str] = None
    image2: Optional[str] = None
    image3: Optional[str] = None
    image4: Optional[str] = None
    image5: Optional[str] = None
    itinerary: Optional[List[ItineraryItem]] = None

    @field_validator('name', 'location', mode='before')
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class DestinationItem(CamelModel):
    name: Optional[str] = None
    region: Optional[str] = None
    tags: Optional[str] = None
    best_season: Optional[str] = None
    image_url: Optional[str] = None
    active: Optional[bool] = None

    @field_validator('name', 'region', mode='before')
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class HotelItem(CamelModel):
    destination_id: Optional[UUID] = None
    name: Optional[str] = None
    rating: Optional[Decimal] = Field(None, ge=0, le=5)
    real_price: Optional[Decimal] = Field(None, ge=0)
    current_price: Optional[Decimal] = Field(None, ge=0)
    location: Optional[str] = None
    nearby: Optional[str] = None
    facilities: Optional[str] = None
    description: Optional[str] = None
    rooms_count: Optional[int] = Field(None, ge=0)
    floors_count: Optional[int] = Field(None, ge=0)

    @field_validator('name', mode='before')
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class RoomItem(CamelModel):
    room_id: Optional[UUID] = Field(None, alias="id")
    name: Optional[str] = None
    current_price: Optional[Decimal] = Field(None, ge=0)
    real_price: Optional[Decimal] = Field(None, ge=0)
    max_guests: Optional[int] = Field(None, ge=1)
    total_rooms: Optional[int] = Field(None, ge=0)
    available_rooms: Optional[int] = Field(None, ge=0)
    bed_type: Optional[str] = None
    facilities: Optional[str] = None
    description: Optional[str] = None
    image1: Optional[str] = None
    image2: Optional[str] = None
    image3: Optional[str] = None
    image4: Optional[str] = None


# ============================================================================
# ADMIN CHANNEL VIEWS
# ============================================================================

class ItineraryView(CamelModel):
    day_number: int
    title: Optional[str] = None
    subtitle: Optional[str] = None


class PackageView(CamelModel):
    package_id: UUID = Field(alias="id")
    name: Optional[str] = None
    location: Optional[str] = None
    base_price: Decimal
    active: bool
    booking_deadline: Optional[date] = None
    overview: Optional[str] = None
    location_points: Optional[str] = None
    timing: Optional[str] = None
    group_size: Optional[str] = None
    dest_image_url: Optional[str] = None
    hotel_image_url: Optional[str] = None
    image1: Optional[str] = None
    image2: Optional[str] = None
    image3: Optional[str] = None
    image4: Optional[str] = None
    image5: Optional[str] = None
    itinerary: List[ItineraryView] = []
    package_available: Optional[bool] = None

    @classmethod
    def of(cls, package: PackageResource, package_available: Optional[bool] = None) -> "PackageView":
        return cls.model_validate({**package.model_dump(), "package_available": package_available})


class DestinationView(CamelModel):
    destination_id: UUID = Field(alias="id")
    name: Optional[str] = None
    region: Optional[str] = None
    tags: Optional[str] = None
    best_season: Optional[str] = None
    image_url: Optional[str] = None
    active: bool
    hotels_count: Optional[int] = None
    package_available: Optional[bool] = None
    package_id: Optional[UUID] = None


class HotelView(CamelModel):
    hotel_id: UUID = Field(alias="id")
    destination_id: Optional[UUID] = None
    name: Optional[str] = None
    rating: Optional[Decimal] = None
    real_price: Optional[Decimal] = None
    current_price: Optional[Decimal] = None
    location: Optional[str] = None
    nearby: Optional[str] = None
    facilities: Optional[str] = None
    description: Optional[str] = None
    rooms_count: int = 0
    floors_count: int = 0

    @classmethod
    def of(cls, hotel: Hotel) -> "HotelView":
        return cls.model_validate(hotel.model_dump())


class RoomView(CamelModel):
    room_id: UUID = Field(alias="id")
    hotel_id: UUID
    name: Optional[str] = None
    current_price: Optional[Decimal] = None
    real_price: Optional[Decimal] = None
    max_guests: Optional[int] = None
    total_rooms: Optional[int] = None
    available_rooms: Optional[int] = None
    bed_type: Optional[str] = None
    facilities: Optional[str] = None
    description: Optional[str] = None
    image1: Optional[str] = None
    image2: Optional[str] = None
    image3: Optional[str] = None
    image4: Optional[str] = None

    @classmethod
    def of(cls, room: RoomResource) -> "RoomView":
        return cls.model_validate(room.model_dump())


def destination_view(destination: Destination, hotels_count: Optional[int] = None,
                     package_id: Optional[UUID] = None) -> DestinationView:
    return DestinationView.model_validate({
        **destination.model_dump(),
        "hotels_count": hotels_count,
        "package_available": package_id is not None,
        "package_id": package_id,
    })


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class RegisterRequest(CamelModel):
    """Customer sign-up DTO"""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6)
    email: Optional[str] = None
    full_name: Optional[str] = None


class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
    is_admin: bool = False
