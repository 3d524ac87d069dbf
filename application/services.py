"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError

from domain.auth import UserInDB, AdminUser
from domain.entities import (
    Reservation, PackageResource, RoomResource, Hotel, Destination, AdminSession,
    start_of_day, utcnow,
)
from domain.enums import ResourceKind
from domain.errors import (
    InvalidRequestError, NotFoundError, IneligibleUserError, InsufficientCapacityError,
    AlreadyCanceledError, PastBookingError, UnauthorizedError,
)
from domain.repositories import (
    ReservationRepository, PackageRepository, RoomRepository, HotelRepository,
    DestinationRepository, UserRepository, EligibilityRepository, AdminUserRepository,
    AdminSessionStore,
)
from domain.value_objects import (
    DateRange, EligibilityRecord, Actor, RefundQuote, CancellationPolicy,
    RoomReservationRequest, PackageReservationRequest,
)
from infrastructure.audit import BookingAuditLog
from infrastructure.security import hash_password_async, verify_password_async

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

INELIGIBLE_MESSAGE = "Complete Personal Information first: ID Type and ID Number are required to book."


def _validate_stay(check_in: Optional[date], check_out: Optional[date]) -> None:
    if check_in is None or check_out is None:
        raise InvalidRequestError("checkIn and checkOut are required")
    if not check_in < check_out:
        raise InvalidRequestError("checkIn must be before checkOut")


class AvailabilityService:
    """Computes remaining room capacity over half-open date ranges"""

    def __init__(self,
                 room_repo: RoomRepository,
                 reservation_repo: ReservationRepository,
                 clock: Clock = utcnow):
        self.room_repo = room_repo
        self.reservation_repo = reservation_repo
        self.clock = clock

    async def remaining_capacity(self, room_id: UUID, check_in: date, check_out: date,
                                 hotel_id: Optional[UUID] = None) -> int:
        """Rooms of ``room_id`` still free on every night of [check_in, check_out)"""
        _validate_stay(check_in, check_out)
        room = await self.room_repo.find_by_id(room_id)
        if not room or (hotel_id is not None and room.hotel_id != hotel_id):
            raise NotFoundError("Room not found")
        return await self.remaining_for_room(room, check_in, check_out)

    async def remaining_for_room(self, room: RoomResource, check_in: date, check_out: date) -> int:
        if room.uses_legacy_capacity:
            logger.warning("Room %s has no totalRooms, using availableRooms snapshot", room.room_id)
        committed = await self.reservation_repo.sum_active_room_quantity(room.room_id, check_in, check_out)
        return max(0, room.capacity - committed)

    async def remaining_for_hotel(self, hotel_id: UUID, check_in: date, check_out: date) -> int:
        """Remaining rooms summed over every room type of a hotel"""
        _validate_stay(check_in, check_out)
        total = 0
        for room in await self.room_repo.find_by_hotel(hotel_id):
            total += await self.remaining_for_room(room, check_in, check_out)
        return total

    async def next_available_date(self, room_id: UUID) -> date:
        """Latest check-out among ACTIVE bookings of the room, or today"""
        reservations = [
            r for r in await self.reservation_repo.find_by_resource(room_id)
            if r.is_active and r.date_range is not None
        ]
        if not reservations:
            return self.clock().date()
        return max(r.date_range.check_out for r in reservations)


class ReservationService:
    """Service for Reservation business use cases"""

    def __init__(self,
                 repository: ReservationRepository,
                 package_repo: PackageRepository,
                 room_repo: RoomRepository,
                 hotel_repo: HotelRepository,
                 user_repo: UserRepository,
                 eligibility_repo: EligibilityRepository,
                 availability: AvailabilityService,
                 audit_log: Optional[BookingAuditLog] = None,
                 clock: Clock = utcnow):
        self.repository = repository
        self.package_repo = package_repo
        self.room_repo = room_repo
        self.hotel_repo = hotel_repo
        self.user_repo = user_repo
        self.eligibility_repo = eligibility_repo
        self.availability = availability
        self.audit_log = audit_log
        self.clock = clock

    async def reserve(
        self,
        user_id: UUID,
        request: Union[RoomReservationRequest, PackageReservationRequest],
    ) -> Reservation:
        """Validate, price and persist a booking request"""
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        if isinstance(request, RoomReservationRequest):
            reservation = await self._reserve_room(user, request)
        elif isinstance(request, PackageReservationRequest):
            reservation = await self._reserve_package(user, request)
        else:
            raise InvalidRequestError("Unsupported reservation request")

        self._record_audit(reservation)
        return reservation

    async def _reserve_room(self, user: UserInDB, request: RoomReservationRequest) -> Reservation:
        now = self.clock()
        self._validate_room_request(request)

        room = await self._find_room(request.room_id, request.hotel_id)
        if room.max_guests and request.total_guests > room.max_guests * request.rooms:
            raise InvalidRequestError(
                f"totalGuests exceeds {room.max_guests} guest(s) per room for {request.rooms} room(s)"
            )
        hotel = await self.hotel_repo.find_by_id(room.hotel_id)
        eligibility = await self.eligibility_repo.find_by_user_id(user.user_id)
        date_range = DateRange(check_in=request.check_in, check_out=request.check_out)

        async with self.room_repo.lock_for_update(room.room_id):
            # re-read under the lock, capacity and price may have moved
            room = await self._find_room(request.room_id, request.hotel_id)
            remaining = await self.availability.remaining_for_room(room, request.check_in, request.check_out)
            if remaining < request.rooms:
                raise InsufficientCapacityError(
                    f"Only {remaining} room(s) left for the selected dates"
                )
            reservation = Reservation.create_for_room(
                room=room,
                date_range=date_range,
                rooms=request.rooms,
                owner_user_id=user.user_id,
                owner_email=user.email,
                total_guests=request.total_guests or None,
                hotel_name=hotel.name if hotel else None,
                customer_name=(eligibility.full_name if eligibility and eligibility.full_name
                               else request.customer_name or user.full_name),
                id_type=eligibility.id_type if eligibility and eligibility.is_complete() else request.id_type,
                id_number=eligibility.id_number if eligibility and eligibility.is_complete() else request.id_number,
                card_last4=request.card_last4,
                now=now,
            )
            await self.repository.save(reservation)

        logger.info(
            "Room reservation %s: %d room(s) of %s for %s, %s",
            reservation.reservation_id, reservation.quantity, room.room_id,
            user.username, reservation.price_total,
        )
        return reservation

    async def _reserve_package(self, user: UserInDB, request: PackageReservationRequest) -> Reservation:
        if request.total_persons <= 0:
            raise InvalidRequestError("totalPersons must be > 0")

        eligibility = await self.eligibility_repo.find_by_user_id(user.user_id)
        if eligibility is None or not eligibility.is_complete():
            raise IneligibleUserError(INELIGIBLE_MESSAGE)

        package = await self.package_repo.find_by_id(request.package_id)
        if not package:
            raise NotFoundError("Package not found")
        now = self.clock()
        if not package.active:
            raise InvalidRequestError("Package is not available for booking")
        if package.deadline_passed(now.date()):
            raise InvalidRequestError("Booking deadline has passed")

        reservation = Reservation.create_for_package(
            package=package,
            persons=request.total_persons,
            owner_user_id=user.user_id,
            owner_email=user.email,
            customer_name=eligibility.full_name or user.full_name,
            id_type=eligibility.id_type,
            id_number=eligibility.id_number,
            card_last4=request.card_last4,
            now=now,
        )
        await self.repository.save(reservation)
        logger.info(
            "Package reservation %s: %d person(s) on %s for %s, %s",
            reservation.reservation_id, reservation.quantity, package.package_id,
            user.username, reservation.price_total,
        )
        return reservation

    @staticmethod
    def _validate_room_request(request: RoomReservationRequest) -> None:
        _validate_stay(request.check_in, request.check_out)
        if request.rooms <= 0:
            raise InvalidRequestError("rooms must be > 0")
        if request.total_guests < 0:
            raise InvalidRequestError("totalGuests must be >= 0")
        if request.total_price is not None and request.total_price < 0:
            raise InvalidRequestError("totalPrice must be >= 0")

    async def _find_room(self, room_id: UUID, hotel_id: Optional[UUID]) -> RoomResource:
        room = await self.room_repo.find_by_id(room_id)
        if not room or (hotel_id is not None and room.hotel_id != hotel_id):
            raise NotFoundError("Room not found")
        return room

    def _record_audit(self, reservation: Reservation) -> None:
        if self.audit_log is None:
            return
        try:
            self.audit_log.record(reservation)
        except Exception:
            logger.warning("Audit log write failed for %s", reservation.reservation_id, exc_info=True)

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: UUID) -> Optional[Reservation]:
        """Get reservation by ID"""
        return await self.repository.find_by_id(reservation_id)

    async def get_reservations_by_owner(self, user_id: UUID) -> List[Reservation]:
        """Get all reservations of a user, newest first"""
        return await self.repository.find_by_owner(user_id)

    async def get_reservations_for_resource(self, resource_id: UUID) -> List[Reservation]:
        """Get all reservations held against a package or room"""
        return await self.repository.find_by_resource(resource_id)

    async def get_all_reservations(self, kind: Optional[ResourceKind] = None) -> List[Reservation]:
        """Get all reservations, optionally of one resource kind"""
        reservations = await self.repository.find_all()
        if kind is None:
            return reservations
        return [r for r in reservations if r.resource_kind == kind]

    async def count_active_persons(self, package_id: UUID) -> int:
        """Seats taken by ACTIVE bookings of a package"""
        return sum(
            r.quantity for r in await self.repository.find_by_resource(package_id)
            if r.is_active and r.resource_kind == ResourceKind.PACKAGE
        )


class CancellationService:
    """Moves reservations to CANCELED and quotes refund fees"""

    def __init__(self,
                 repository: ReservationRepository,
                 package_repo: PackageRepository,
                 policy: Optional[CancellationPolicy] = None,
                 clock: Clock = utcnow):
        self.repository = repository
        self.package_repo = package_repo
        self.policy = policy or CancellationPolicy()
        self.clock = clock

    async def cancel(
        self,
        reservation_id: UUID,
        actor: Actor,
        expected_kind: Optional[ResourceKind] = None,
    ) -> Reservation:
        """Cancel a reservation on behalf of its owner or an operator.

        Owners may not cancel once the stay has started (rooms) or the
        package booking deadline has passed. Operators may cancel past
        bookings.
        """
        async with self.repository.lock_for_update(reservation_id):
            reservation = await self._load_for(reservation_id, actor, expected_kind)
            if not reservation.is_active:
                raise AlreadyCanceledError("Reservation is already canceled")

            now = self.clock()
            if not actor.is_admin and await self._is_past(reservation, now):
                raise PastBookingError("Booking can no longer be canceled")

            reservation.cancel(actor.kind, now)
            await self.repository.update(reservation)

        logger.info("Reservation %s canceled by %s", reservation.reservation_id, actor.kind.value)
        return reservation

    async def quote_refund(
        self,
        reservation_id: UUID,
        actor: Actor,
        at: Optional[datetime] = None,
    ) -> RefundQuote:
        """Advisory fee breakdown, as of the cancellation time when canceled"""
        reservation = await self._load_for(reservation_id, actor, None)
        return self.quote_for(reservation, at)

    def quote_for(self, reservation: Reservation, at: Optional[datetime] = None) -> RefundQuote:
        moment = at or reservation.canceled_at or self.clock()
        return reservation.calculate_refund(moment, self.policy)

    async def _load_for(
        self,
        reservation_id: UUID,
        actor: Actor,
        expected_kind: Optional[ResourceKind],
    ) -> Reservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError("Reservation not found")
        if expected_kind is not None and reservation.resource_kind != expected_kind:
            raise NotFoundError("Reservation not found")
        if not actor.is_admin and reservation.owner_user_id != actor.user_id:
            raise NotFoundError("Reservation not found")
        return reservation

    async def _is_past(self, reservation: Reservation, now: datetime) -> bool:
        if reservation.is_room:
            return now >= start_of_day(reservation.date_range.check_in)
        package = await self.package_repo.find_by_id(reservation.resource_id)
        return package is not None and package.deadline_passed(now.date())


class PackageListing(BaseModel):
    package: PackageResource
    package_available: bool


class DestinationListing(BaseModel):
    destination: Destination
    hotels_count: int
    package_id: Optional[UUID] = None


class InventoryService:
    """Create, update and delete bookable inventory for operators.

    ``fields`` arguments are partial snake_case payloads: only keys present
    are applied.
    """

    def __init__(self,
                 package_repo: PackageRepository,
                 destination_repo: DestinationRepository,
                 hotel_repo: HotelRepository,
                 room_repo: RoomRepository):
        self.package_repo = package_repo
        self.destination_repo = destination_repo
        self.hotel_repo = hotel_repo
        self.room_repo = room_repo

    # ==================== PACKAGES ====================
    async def list_packages(self) -> List[PackageListing]:
        destinations = await self.destination_repo.find_all()
        active_names = {(d.name or "").strip().lower() for d in destinations if d.active and d.name}
        return [
            PackageListing(
                package=p,
                package_available=(p.location or "").strip().lower() in active_names,
            )
            for p in await self.package_repo.find_all()
        ]

    async def get_package(self, package_id: UUID) -> PackageResource:
        package = await self.package_repo.find_by_id(package_id)
        if not package:
            raise NotFoundError("NOT_FOUND")
        return package

    async def create_package(self, fields: Dict[str, Any]) -> PackageResource:
        package = self._build(PackageResource, {}, fields)
        package = self._default_package_images(package, fields)
        return await self.package_repo.save(package)

    async def update_package(self, package_id: UUID, fields: Dict[str, Any]) -> PackageResource:
        current = await self.get_package(package_id)
        package = self._build(PackageResource, current.model_dump(), fields)
        package = self._default_package_images(package, fields)
        return await self.package_repo.save(package)

    async def delete_package(self, package_id: UUID) -> bool:
        return await self.package_repo.delete(package_id)

    @staticmethod
    def _default_package_images(package: PackageResource, fields: Dict[str, Any]) -> PackageResource:
        updates = {}
        if "dest_image_url" not in fields and package.dest_image_url is None:
            updates["dest_image_url"] = package.image1
        if "hotel_image_url" not in fields and package.hotel_image_url is None:
            updates["hotel_image_url"] = package.image5
        return package.model_copy(update=updates) if updates else package

    # ==================== DESTINATIONS ====================
    async def list_destinations(self) -> List[DestinationListing]:
        packages = await self.package_repo.find_all()
        listings = []
        for d in await self.destination_repo.find_all():
            name = (d.name or "").strip().lower()
            match = next(
                (p for p in packages if p.active and name and (p.location or "").strip().lower() == name),
                None,
            )
            listings.append(DestinationListing(
                destination=d,
                hotels_count=len(await self.hotel_repo.find_by_destination(d.destination_id)),
                package_id=match.package_id if match else None,
            ))
        return listings

    async def create_destination(self, fields: Dict[str, Any]) -> Destination:
        return await self.destination_repo.save(self._build(Destination, {}, fields))

    async def update_destination(self, destination_id: UUID, fields: Dict[str, Any]) -> Destination:
        current = await self.destination_repo.find_by_id(destination_id)
        if not current:
            raise NotFoundError("NOT_FOUND")
        return await self.destination_repo.save(self._build(Destination, current.model_dump(), fields))

    async def delete_destination(self, destination_id: UUID) -> bool:
        return await self.destination_repo.delete(destination_id)

    # ==================== HOTELS ====================
    async def list_hotels(self, destination_id: UUID) -> List[Hotel]:
        return await self.hotel_repo.find_by_destination(destination_id)

    async def create_hotel(self, fields: Dict[str, Any]) -> Hotel:
        return await self.hotel_repo.save(self._build(Hotel, {}, fields))

    async def update_hotel(self, hotel_id: UUID, fields: Dict[str, Any]) -> Hotel:
        current = await self.hotel_repo.find_by_id(hotel_id)
        if not current:
            raise NotFoundError("NOT_FOUND")
        return await self.hotel_repo.save(self._build(Hotel, current.model_dump(), fields))

    async def delete_hotel(self, hotel_id: UUID) -> bool:
        deleted = await self.hotel_repo.delete(hotel_id)
        if deleted:
            await self.room_repo.delete_by_hotel(hotel_id)
        return deleted

    # ==================== ROOMS ====================
    async def list_rooms(self, hotel_id: UUID) -> List[RoomResource]:
        return await self.room_repo.find_by_hotel(hotel_id)

    async def save_rooms(self, hotel_id: UUID, items: List[Dict[str, Any]]) -> List[RoomResource]:
        """Replace every room type of a hotel with ``items``.

        Room ids present in ``items`` are kept so existing reservations still
        point at them. A room id owned by another hotel is rejected before any
        row is replaced. ``total_rooms`` is backfilled from ``available_rooms``.
        """
        if not await self.hotel_repo.find_by_id(hotel_id):
            raise NotFoundError("NOT_FOUND")
        rooms = []
        for fields in items:
            fields = {k: v for k, v in fields.items() if not (k == "room_id" and v is None)}
            room = self._build(RoomResource, {"hotel_id": hotel_id}, fields)
            existing = await self.room_repo.find_by_id(room.room_id)
            if existing and existing.hotel_id != hotel_id:
                raise InvalidRequestError(f"Room {room.room_id} belongs to another hotel")
            if room.total_rooms is None and room.available_rooms is not None:
                room = room.model_copy(update={"total_rooms": room.available_rooms})
            rooms.append(room)

        await self.room_repo.delete_by_hotel(hotel_id)
        for room in rooms:
            await self.room_repo.save(room)
        logger.info("Saved %d room type(s) for hotel %s", len(rooms), hotel_id)
        return rooms

    @staticmethod
    def _build(model, current: Dict[str, Any], fields: Dict[str, Any]):
        try:
            return model.model_validate({**current, **fields})
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid {model.__name__}: {e.errors()[0].get('msg')}")


class AdminAuthService:
    """Issues and checks admin channel sessions"""

    def __init__(self, admin_repo: AdminUserRepository, sessions: AdminSessionStore):
        self.admin_repo = admin_repo
        self.sessions = sessions

    async def seed_admin(self, email: Optional[str], password: Optional[str]) -> Optional[AdminUser]:
        """Create or refresh the bootstrap operator from configuration"""
        if not email or not email.strip():
            logger.info("ADMIN_EMAIL not set; skipping admin bootstrap")
            return None
        email = email.strip().lower()
        existing = await self.admin_repo.find_by_email(email)
        if existing and not password:
            return existing
        if not password:
            logger.warning("ADMIN_PASSWORD not set; cannot create admin for %s", email)
            return None
        hashed = await hash_password_async(password)
        admin = AdminUser(email=email, hashed_password=hashed)
        if existing:
            admin = existing.model_copy(update={"hashed_password": hashed})
        return await self.admin_repo.save(admin)

    async def authenticate(self, email: Optional[str], password: Optional[str]) -> AdminSession:
        if not isinstance(email, str) or not isinstance(password, str):
            raise UnauthorizedError("MISSING_CREDENTIALS")
        admin = await self.admin_repo.find_by_email(email.strip().lower())
        if not admin:
            raise UnauthorizedError("NO_SUCH_ADMIN")
        if not await verify_password_async(password, admin.hashed_password):
            raise UnauthorizedError("BAD_PASSWORD")
        return self.sessions.issue(admin.admin_id)

    def authorize(self, token: Optional[str]) -> AdminSession:
        session = self.sessions.resolve(token)
        if session is None:
            raise UnauthorizedError("UNAUTHORIZED")
        return session

    def logout(self, token: str) -> bool:
        return self.sessions.revoke(token)


class AccountService:
    """Customer accounts and their eligibility records"""

    def __init__(self, user_repo: UserRepository, eligibility_repo: EligibilityRepository):
        self.user_repo = user_repo
        self.eligibility_repo = eligibility_repo

    async def register(self,
                       username: str,
                       password: str,
                       email: Optional[str] = None,
                       full_name: Optional[str] = None,
                       is_admin: bool = False) -> UserInDB:
        if await self.user_repo.find_by_username(username):
            raise InvalidRequestError("Username already registered")
        hashed = await hash_password_async(password)
        user = UserInDB(
            username=username,
            email=email.lower() if email else None,
            full_name=full_name,
            is_admin=is_admin,
            hashed_password=hashed,
        )
        return await self.user_repo.save(user)

    async def authenticate(self, username: str, password: str) -> Optional[UserInDB]:
        user = await self.user_repo.find_by_username(username)
        if not user:
            return None
        if not await verify_password_async(password, user.hashed_password):
            return None
        return user

    async def get_eligibility(self, user_id: UUID) -> EligibilityRecord:
        record = await self.eligibility_repo.find_by_user_id(user_id)
        return record or EligibilityRecord()

    async def update_eligibility(self, user_id: UUID, record: EligibilityRecord) -> EligibilityRecord:
        if not await self.user_repo.find_by_id(user_id):
            raise NotFoundError("User not found")
        cleaned = EligibilityRecord(
            id_type=record.id_type.strip() if record.id_type else None,
            id_number=record.id_number.strip() if record.id_number else None,
            full_name=record.full_name.strip() if record.full_name else None,
        )
        return await self.eligibility_repo.save(user_id, cleaned)
