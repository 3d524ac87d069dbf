"""In-Memory Repository Implementations"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, List, Dict
from uuid import UUID
from datetime import date

from domain.auth import UserInDB, AdminUser
from domain.entities import Reservation, PackageResource, RoomResource, Hotel, Destination
from domain.repositories import (
    ReservationRepository, PackageRepository, RoomRepository, HotelRepository,
    DestinationRepository, UserRepository, EligibilityRepository, AdminUserRepository,
)
from domain.value_objects import EligibilityRecord


class _RowLocks:
    """One asyncio.Lock per row id, standing in for SELECT ... FOR UPDATE"""

    def __init__(self):
        self._locks: Dict[UUID, asyncio.Lock] = {}

    def get(self, row_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(row_id)
        if lock is None:
            lock = self._locks.setdefault(row_id, asyncio.Lock())
        return lock

    @asynccontextmanager
    async def hold(self, row_id: UUID) -> AsyncIterator[None]:
        async with self.get(row_id):
            yield


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}
        self._locks = _RowLocks()

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        for existing in self._storage.values():
            if (existing.transaction_id == reservation.transaction_id
                    and existing.reservation_id != reservation.reservation_id):
                raise ValueError("Duplicate transaction id")
        self._storage[reservation.reservation_id] = reservation
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._storage.get(reservation_id)

    async def find_by_owner(self, user_id: UUID) -> List[Reservation]:
        """Find reservations by owner, newest first"""
        owned = [r for r in self._storage.values() if r.owner_user_id == user_id]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)

    async def find_by_resource(self, resource_id: UUID) -> List[Reservation]:
        """Find reservations by resource, newest first"""
        held = [r for r in self._storage.values() if r.resource_id == resource_id]
        return sorted(held, key=lambda r: r.created_at, reverse=True)

    async def find_all(self) -> List[Reservation]:
        """Find all reservations, newest first"""
        return sorted(self._storage.values(), key=lambda r: r.created_at, reverse=True)

    async def sum_active_room_quantity(self, room_id: UUID, check_in: date, check_out: date) -> int:
        """Rooms committed by ACTIVE reservations overlapping [check_in, check_out)"""
        return sum(
            r.quantity for r in self._storage.values()
            if r.resource_id == room_id and r.commits_room_over(check_in, check_out)
        )

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if reservation.reservation_id in self._storage:
            self._storage[reservation.reservation_id] = reservation
            return reservation
        raise ValueError("Reservation not found")

    def lock_for_update(self, reservation_id: UUID):
        return self._locks.hold(reservation_id)


class InMemoryPackageRepository(PackageRepository):
    """In-memory implementation of PackageRepository"""

    def __init__(self):
        self._storage: Dict[UUID, PackageResource] = {}

    async def save(self, package: PackageResource) -> PackageResource:
        self._storage[package.package_id] = package
        return package

    async def find_by_id(self, package_id: UUID) -> Optional[PackageResource]:
        return self._storage.get(package_id)

    async def find_all(self) -> List[PackageResource]:
        return sorted(self._storage.values(), key=lambda p: (p.name or "").lower())

    async def delete(self, package_id: UUID) -> bool:
        return self._storage.pop(package_id, None) is not None


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self):
        self._storage: Dict[UUID, RoomResource] = {}
        self._locks = _RowLocks()

    async def save(self, room: RoomResource) -> RoomResource:
        self._storage[room.room_id] = room
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[RoomResource]:
        return self._storage.get(room_id)

    async def find_by_hotel(self, hotel_id: UUID) -> List[RoomResource]:
        rooms = [r for r in self._storage.values() if r.hotel_id == hotel_id]
        return sorted(rooms, key=lambda r: (r.name or "").lower())

    async def delete_by_hotel(self, hotel_id: UUID) -> int:
        doomed = [room_id for room_id, r in self._storage.items() if r.hotel_id == hotel_id]
        for room_id in doomed:
            del self._storage[room_id]
        return len(doomed)

    def lock_for_update(self, room_id: UUID):
        return self._locks.hold(room_id)


class InMemoryHotelRepository(HotelRepository):
    """In-memory implementation of HotelRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Hotel] = {}

    async def save(self, hotel: Hotel) -> Hotel:
        self._storage[hotel.hotel_id] = hotel
        return hotel

    async def find_by_id(self, hotel_id: UUID) -> Optional[Hotel]:
        return self._storage.get(hotel_id)

    async def find_by_destination(self, destination_id: UUID) -> List[Hotel]:
        hotels = [h for h in self._storage.values() if h.destination_id == destination_id]
        return sorted(hotels, key=lambda h: (h.name or "").lower())

    async def delete(self, hotel_id: UUID) -> bool:
        return self._storage.pop(hotel_id, None) is not None


class InMemoryDestinationRepository(DestinationRepository):
    """In-memory implementation of DestinationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Destination] = {}

    async def save(self, destination: Destination) -> Destination:
        self._storage[destination.destination_id] = destination
        return destination

    async def find_by_id(self, destination_id: UUID) -> Optional[Destination]:
        return self._storage.get(destination_id)

    async def find_all(self) -> List[Destination]:
        return sorted(self._storage.values(), key=lambda d: (d.name or "").lower())

    async def delete(self, destination_id: UUID) -> bool:
        return self._storage.pop(destination_id, None) is not None


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository"""

    def __init__(self):
        self._storage: Dict[UUID, UserInDB] = {}

    async def save(self, user: UserInDB) -> UserInDB:
        for existing in self._storage.values():
            if existing.username == user.username and existing.user_id != user.user_id:
                raise ValueError("Username already registered")
        self._storage[user.user_id] = user
        return user

    async def find_by_id(self, user_id: UUID) -> Optional[UserInDB]:
        return self._storage.get(user_id)

    async def find_by_username(self, username: str) -> Optional[UserInDB]:
        for user in self._storage.values():
            if user.username == username:
                return user
        return None


class InMemoryEligibilityRepository(EligibilityRepository):
    """In-memory implementation of EligibilityRepository"""

    def __init__(self):
        self._storage: Dict[UUID, EligibilityRecord] = {}

    async def save(self, user_id: UUID, record: EligibilityRecord) -> EligibilityRecord:
        self._storage[user_id] = record
        return record

    async def find_by_user_id(self, user_id: UUID) -> Optional[EligibilityRecord]:
        return self._storage.get(user_id)


class InMemoryAdminUserRepository(AdminUserRepository):
    """In-memory implementation of AdminUserRepository"""

    def __init__(self):
        self._storage: Dict[str, AdminUser] = {}

    async def save(self, admin: AdminUser) -> AdminUser:
        self._storage[admin.email.lower()] = admin
        return admin

    async def find_by_email(self, email: str) -> Optional[AdminUser]:
        return self._storage.get(email.lower())
