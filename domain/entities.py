"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, date, time, timezone
from typing import Optional, List
from decimal import Decimal

from domain.enums import ReservationStatus, ResourceKind, ActorKind
from domain.errors import AlreadyCanceledError
from domain.value_objects import DateRange, CancellationPolicy, RefundQuote, ItineraryStep


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class Destination(BaseModel):
    """Destination a package or hotel belongs to"""
    destination_id: UUID = Field(default_factory=uuid4)
    name: Optional[str] = None
    region: Optional[str] = None
    tags: Optional[str] = None
    best_season: Optional[str] = None
    image_url: Optional[str] = None
    active: bool = True

    class Config:
        from_attributes = True


class Hotel(BaseModel):
    """Hotel owning a set of room types"""
    hotel_id: UUID = Field(default_factory=uuid4)
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

    class Config:
        from_attributes = True


class PackageResource(BaseModel):
    """Travel package. Seats are unbounded and priced per participant."""
    package_id: UUID = Field(default_factory=uuid4)
    name: Optional[str] = None
    location: Optional[str] = None
    base_price: Decimal = Decimal("0")
    active: bool = True
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
    itinerary: List[ItineraryStep] = []

    class Config:
        from_attributes = True

    def deadline_passed(self, today: date) -> bool:
        return self.booking_deadline is not None and today > self.booking_deadline


class RoomResource(BaseModel):
    """Hotel room type with a finite number of identical rooms"""
    room_id: UUID = Field(default_factory=uuid4)
    hotel_id: UUID
    name: Optional[str] = None
    current_price: Optional[Decimal] = None
    real_price: Optional[Decimal] = None
    max_guests: Optional[int] = None
    total_rooms: Optional[int] = None
    # legacy snapshot, only read when total_rooms was never set
    available_rooms: Optional[int] = None
    bed_type: Optional[str] = None
    facilities: Optional[str] = None
    description: Optional[str] = None
    image1: Optional[str] = None
    image2: Optional[str] = None
    image3: Optional[str] = None
    image4: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def uses_legacy_capacity(self) -> bool:
        return self.total_rooms is None

    @property
    def capacity(self) -> int:
        if self.total_rooms is not None:
            return self.total_rooms
        return self.available_rooms or 0

    @property
    def price_per_room(self) -> Decimal:
        return self.current_price if self.current_price is not None else Decimal("0")


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)
    transaction_id: str

    # References to other contexts
    resource_id: UUID
    resource_kind: ResourceKind
    resource_name: Optional[str] = None
    hotel_name: Optional[str] = None
    owner_user_id: Optional[UUID] = None
    owner_email: Optional[str] = None

    # Claim
    quantity: int = Field(gt=0)
    date_range: Optional[DateRange] = None
    total_guests: Optional[int] = None
    price_total: Decimal

    # Customer snapshot
    customer_name: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    card_last4: Optional[str] = None

    # Lifecycle
    status: ReservationStatus = ReservationStatus.ACTIVE
    created_at: datetime = Field(default_factory=utcnow)
    canceled_at: Optional[datetime] = None
    canceled_by: Optional[ActorKind] = None
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHODS ====================
    @staticmethod
    def create_for_room(
        room: RoomResource,
        date_range: DateRange,
        rooms: int,
        owner_user_id: Optional[UUID],
        owner_email: Optional[str],
        total_guests: Optional[int] = None,
        hotel_name: Optional[str] = None,
        customer_name: Optional[str] = None,
        id_type: Optional[str] = None,
        id_number: Optional[str] = None,
        card_last4: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Reservation":
        """Book ``rooms`` rooms of ``room`` at its current price"""
        return Reservation(
            transaction_id=Reservation._generate_transaction_id(),
            resource_id=room.room_id,
            resource_kind=ResourceKind.ROOM,
            resource_name=room.name,
            hotel_name=hotel_name,
            owner_user_id=owner_user_id,
            owner_email=owner_email,
            quantity=rooms,
            date_range=date_range,
            total_guests=total_guests,
            price_total=room.price_per_room * rooms,
            customer_name=customer_name,
            id_type=id_type,
            id_number=id_number,
            card_last4=card_last4,
            created_at=now or utcnow(),
        )

    @staticmethod
    def create_for_package(
        package: PackageResource,
        persons: int,
        owner_user_id: Optional[UUID],
        owner_email: Optional[str],
        customer_name: Optional[str] = None,
        id_type: Optional[str] = None,
        id_number: Optional[str] = None,
        card_last4: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Reservation":
        """Book ``persons`` seats of ``package`` at its base price"""
        return Reservation(
            transaction_id=Reservation._generate_transaction_id(),
            resource_id=package.package_id,
            resource_kind=ResourceKind.PACKAGE,
            resource_name=package.name,
            owner_user_id=owner_user_id,
            owner_email=owner_email,
            quantity=persons,
            price_total=package.base_price * persons,
            customer_name=customer_name,
            id_type=id_type,
            id_number=id_number,
            card_last4=card_last4,
            created_at=now or utcnow(),
        )

    # ==================== STATE TRANSITION METHODS ====================
    def cancel(self, canceled_by: ActorKind, now: Optional[datetime] = None) -> None:
        """ACTIVE -> CANCELED. CANCELED is terminal."""
        if self.status == ReservationStatus.CANCELED:
            raise AlreadyCanceledError("Reservation is already canceled")

        self.status = ReservationStatus.CANCELED
        self.canceled_at = now or utcnow()
        self.canceled_by = canceled_by
        self.version += 1

    # ==================== QUERY METHODS ====================
    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE

    @property
    def is_room(self) -> bool:
        return self.resource_kind == ResourceKind.ROOM

    def commits_room_over(self, start: date, end: date) -> bool:
        """True when this ACTIVE room reservation overlaps [start, end)"""
        return (
            self.is_active
            and self.is_room
            and self.date_range is not None
            and self.date_range.overlaps(start, end)
        )

    def hours_until_check_in(self, now: datetime) -> float:
        if self.date_range is None:
            return 0.0
        return (start_of_day(self.date_range.check_in) - now).total_seconds() / 3600

    def calculate_refund(
        self,
        at: datetime,
        policy: Optional[CancellationPolicy] = None,
    ) -> RefundQuote:
        """Calculate the advisory cancellation fee at instant ``at``"""
        policy = policy or CancellationPolicy()
        if self.is_room:
            percentage = policy.room_fee_percentage(self.hours_until_check_in(at))
        else:
            hours_since = (at - self.created_at).total_seconds() / 3600
            percentage = policy.package_fee_percentage(hours_since)
        return policy.quote(self.price_total, percentage)

    @staticmethod
    def _generate_transaction_id() -> str:
        return "TXN" + uuid4().hex[:12].upper()


class AdminSession(BaseModel):
    """Admin channel session, held in memory only"""
    token: str
    admin_user_id: UUID
    issued_at: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True
