"""Domain Value Objects"""
from pydantic import BaseModel, Field, field_validator, ValidationInfo
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID
from typing import Optional

from domain.enums import ActorKind


CENTS = Decimal("0.01")


class DateRange(BaseModel):
    """Half-open stay range [check_in, check_out)"""
    check_in: date
    check_out: date

    @field_validator('check_out')
    @classmethod
    def check_out_after_check_in(cls, v, info: ValidationInfo):
        check_in = info.data.get('check_in')
        if check_in is not None and v <= check_in:
            raise ValueError('Check-out must be after check-in')
        return v

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def overlaps(self, start: date, end: date) -> bool:
        # checkout day is free for the next guest
        return self.check_in < end and start < self.check_out

    def contains(self, day: date) -> bool:
        return self.check_in <= day < self.check_out

    class Config:
        frozen = True


class EligibilityRecord(BaseModel):
    """Identity verification a user must have on file to book a package"""
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    full_name: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.id_type and self.id_type.strip()) and bool(
            self.id_number and self.id_number.strip()
        )

    class Config:
        frozen = True


class Actor(BaseModel):
    """The party asking for a cancellation"""
    kind: ActorKind
    user_id: Optional[UUID] = None

    @staticmethod
    def user(user_id: UUID) -> "Actor":
        return Actor(kind=ActorKind.USER, user_id=user_id)

    @staticmethod
    def admin() -> "Actor":
        return Actor(kind=ActorKind.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.kind == ActorKind.ADMIN

    class Config:
        frozen = True


class RefundQuote(BaseModel):
    """Advisory refund breakdown shown before or after a cancellation"""
    fee_percentage: Decimal
    fee: Decimal
    refund: Decimal
    non_refundable: bool = False

    class Config:
        frozen = True


class CancellationPolicy(BaseModel):
    """Refund-fee ramp.

    Rooms are free to cancel ``free_hours`` or more before check-in. Inside
    that window the fee starts at ``min_fee_percentage`` and grows linearly
    to ``max_fee_percentage`` at check-in. Packages are free to cancel for
    ``package_free_hours`` after booking and non-refundable afterwards.
    """
    free_hours: int = Field(default=24, gt=0)
    min_fee_percentage: Decimal = Field(default=Decimal("15"), ge=0, le=100)
    max_fee_percentage: Decimal = Field(default=Decimal("80"), ge=0, le=100)
    package_free_hours: int = Field(default=24, ge=0)

    def room_fee_percentage(self, hours_left: float) -> Decimal:
        hours_left = max(0.0, hours_left)
        if hours_left >= self.free_hours:
            return Decimal("0")
        ratio = Decimal(str(1 - hours_left / self.free_hours))
        spread = self.max_fee_percentage - self.min_fee_percentage
        percentage = self.min_fee_percentage + spread * ratio
        return min(self.max_fee_percentage, percentage).quantize(CENTS, rounding=ROUND_HALF_UP)

    def package_fee_percentage(self, hours_since_booking: float) -> Decimal:
        if hours_since_booking <= self.package_free_hours:
            return Decimal("0")
        return Decimal("100")

    def quote(self, total: Decimal, fee_percentage: Decimal) -> RefundQuote:
        fee = (total * fee_percentage / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)
        fee = min(fee, total)
        refund = max(Decimal("0"), total - fee)
        return RefundQuote(
            fee_percentage=fee_percentage,
            fee=fee,
            refund=refund,
            non_refundable=fee_percentage >= Decimal("100"),
        )

    class Config:
        frozen = True


class ItineraryStep(BaseModel):
    """One day of a travel package itinerary"""
    day_number: int = 1
    title: Optional[str] = None
    subtitle: Optional[str] = None


class RoomReservationRequest(BaseModel):
    """What a customer asks for when booking hotel rooms"""
    room_id: UUID
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    rooms: int = 0
    total_guests: int = 0
    hotel_id: Optional[UUID] = None
    total_price: Optional[Decimal] = None
    customer_name: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    card_last4: Optional[str] = None


class PackageReservationRequest(BaseModel):
    """What a customer asks for when booking a travel package"""
    package_id: UUID
    total_persons: int = 0
    card_last4: Optional[str] = None
