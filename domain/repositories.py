"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Optional, List
from uuid import UUID
from datetime import date

from domain.auth import UserInDB, AdminUser
from domain.entities import Reservation, PackageResource, RoomResource, Hotel, Destination, AdminSession
from domain.value_objects import EligibilityRecord


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_owner(self, user_id: UUID) -> List[Reservation]:
        """Find reservations owned by a user, newest first"""
        pass

    @abstractmethod
    async def find_by_resource(self, resource_id: UUID) -> List[Reservation]:
        """Find reservations held against a package or room"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations, newest first"""
        pass

    @abstractmethod
    async def sum_active_room_quantity(self, room_id: UUID, check_in: date, check_out: date) -> int:
        """Rooms committed by ACTIVE reservations overlapping [check_in, check_out)"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    def lock_for_update(self, reservation_id: UUID) -> AsyncContextManager[None]:
        """Exclusive lock on a reservation row"""
        pass


class PackageRepository(ABC):
    """Repository interface for travel packages"""

    @abstractmethod
    async def save(self, package: PackageResource) -> PackageResource:
        pass

    @abstractmethod
    async def find_by_id(self, package_id: UUID) -> Optional[PackageResource]:
        pass

    @abstractmethod
    async def find_all(self) -> List[PackageResource]:
        pass

    @abstractmethod
    async def delete(self, package_id: UUID) -> bool:
        pass


class RoomRepository(ABC):
    """Repository interface for hotel room types"""

    @abstractmethod
    async def save(self, room: RoomResource) -> RoomResource:
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[RoomResource]:
        pass

    @abstractmethod
    async def find_by_hotel(self, hotel_id: UUID) -> List[RoomResource]:
        """Rooms of a hotel ordered by name"""
        pass

    @abstractmethod
    async def delete_by_hotel(self, hotel_id: UUID) -> int:
        pass

    @abstractmethod
    def lock_for_update(self, room_id: UUID) -> AsyncContextManager[None]:
        """Exclusive lock on a room row, held across check-then-insert"""
        pass


class HotelRepository(ABC):
    """Repository interface for hotels"""

    @abstractmethod
    async def save(self, hotel: Hotel) -> Hotel:
        pass

    @abstractmethod
    async def find_by_id(self, hotel_id: UUID) -> Optional[Hotel]:
        pass

    @abstractmethod
    async def find_by_destination(self, destination_id: UUID) -> List[Hotel]:
        """Hotels of a destination ordered by name"""
        pass

    @abstractmethod
    async def delete(self, hotel_id: UUID) -> bool:
        pass


class DestinationRepository(ABC):
    """Repository interface for destinations"""

    @abstractmethod
    async def save(self, destination: Destination) -> Destination:
        pass

    @abstractmethod
    async def find_by_id(self, destination_id: UUID) -> Optional[Destination]:
        pass

    @abstractmethod
    async def find_all(self) -> List[Destination]:
        pass

    @abstractmethod
    async def delete(self, destination_id: UUID) -> bool:
        pass


class UserRepository(ABC):
    """Repository interface for customer accounts"""

    @abstractmethod
    async def save(self, user: UserInDB) -> UserInDB:
        pass

    @abstractmethod
    async def find_by_id(self, user_id: UUID) -> Optional[UserInDB]:
        pass

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[UserInDB]:
        pass


class EligibilityRepository(ABC):
    """Repository interface for per-user identity verification records"""

    @abstractmethod
    async def save(self, user_id: UUID, record: EligibilityRecord) -> EligibilityRecord:
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> Optional[EligibilityRecord]:
        pass


class AdminUserRepository(ABC):
    """Repository interface for admin channel operators"""

    @abstractmethod
    async def save(self, admin: AdminUser) -> AdminUser:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[AdminUser]:
        pass


class AdminSessionStore(ABC):
    """Capability store for admin channel tokens"""

    @abstractmethod
    def issue(self, admin_user_id: UUID) -> AdminSession:
        pass

    @abstractmethod
    def resolve(self, token: Optional[str]) -> Optional[AdminSession]:
        """Return the live session for ``token`` or None"""
        pass

    @abstractmethod
    def revoke(self, token: str) -> bool:
        pass
