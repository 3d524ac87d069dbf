import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

import uvicorn
from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Bookings
    PackageBookingRequest, RoomBookingRequest, ReservationResponse,
    PackageBookingsResponse, RoomOccupancyResponse, AvailabilityResponse,
    RefundQuoteResponse, PackageSummary,
    # Profile
    EligibilityPayload, ProfileResponse,
    # Auth
    RegisterRequest, Token, UserResponse
)

from api.admin_channel import AdminChannelServer, AdminProtocolHandler
from api.dependencies import (
    get_current_active_user, get_current_admin_user, get_user, user_repo, eligibility_repo
)
from infrastructure.config import (
    ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_SESSION_TTL_MINUTES, ADMIN_SOCKET_ENABLED,
    ADMIN_SOCKET_HOST, ADMIN_SOCKET_PORT, ADMIN_SOCKET_READ_TIMEOUT_SECONDS, BOOKINGS_LOG_PATH,
)
from infrastructure.audit import BookingAuditLog
from infrastructure.logging_config import configure_logging
from infrastructure.security import create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from infrastructure.sessions import InMemoryAdminSessionStore
from domain.auth import User

from application.services import (
    AvailabilityService, ReservationService, CancellationService, InventoryService,
    AdminAuthService, AccountService,
)
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryPackageRepository, InMemoryRoomRepository,
    InMemoryHotelRepository, InMemoryDestinationRepository, InMemoryAdminUserRepository,
)
from domain.enums import ReservationStatus, ResourceKind, ErrorKind
from domain.errors import ReservationError, NotFoundError
from domain.value_objects import (
    Actor, EligibilityRecord, RoomReservationRequest, PackageReservationRequest,
)

configure_logging()
logger = logging.getLogger(__name__)

# Initialize repositories
reservation_repo = InMemoryReservationRepository()
package_repo = InMemoryPackageRepository()
room_repo = InMemoryRoomRepository()
hotel_repo = InMemoryHotelRepository()
destination_repo = InMemoryDestinationRepository()
admin_user_repo = InMemoryAdminUserRepository()
admin_sessions = InMemoryAdminSessionStore(
    ttl=timedelta(minutes=ADMIN_SESSION_TTL_MINUTES) if ADMIN_SESSION_TTL_MINUTES else None
)
audit_log = BookingAuditLog(BOOKINGS_LOG_PATH)

# Dependency injection
def get_availability_service() -> AvailabilityService:
    return AvailabilityService(room_repo, reservation_repo)

def get_reservation_service() -> ReservationService:
    return ReservationService(
        reservation_repo, package_repo, room_repo, hotel_repo, user_repo, eligibility_repo,
        get_availability_service(), audit_log,
    )

def get_cancellation_service() -> CancellationService:
    return CancellationService(reservation_repo, package_repo)

def get_inventory_service() -> InventoryService:
    return InventoryService(package_repo, destination_repo, hotel_repo, room_repo)

def get_account_service() -> AccountService:
    return AccountService(user_repo, eligibility_repo)

def get_admin_auth_service() -> AdminAuthService:
    return AdminAuthService(admin_user_repo, admin_sessions)


@asynccontextmanager
async def lifespan(app: FastAPI):
    admin_auth = get_admin_auth_service()
    await admin_auth.seed_admin(ADMIN_EMAIL, ADMIN_PASSWORD)

    server = None
    if ADMIN_SOCKET_ENABLED:
        handler = AdminProtocolHandler(admin_auth, get_inventory_service())
        server = AdminChannelServer(
            handler, ADMIN_SOCKET_HOST, ADMIN_SOCKET_PORT, ADMIN_SOCKET_READ_TIMEOUT_SECONDS
        )
        await server.start()
    app.state.admin_channel = server
    try:
        yield
    finally:
        if server is not None:
            await server.stop()
        audit_log.close()


app = FastAPI(
    title="Travel Reservation API",
    description="Reservation core for travel packages and hotel rooms",
    version="1.0.0",
    lifespan=lifespan,
)


def _error_detail(e: ValueError) -> dict:
    if isinstance(e, ReservationError):
        return e.to_dict()
    return {"kind": ErrorKind.INVALID_REQUEST.value, "message": str(e)}


def _actor_for(user: User) -> Actor:
    return Actor.admin() if user.is_admin else Actor.user(user.user_id)

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    server = getattr(app.state, "admin_channel", None)
    return {
        "status": "healthy",
        "message": "API is running",
        "adminChannel": bool(server and server.is_serving),
    }

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [f"{item.name}" for item in ReservationStatus],
        "description": "Reservation status values: ACTIVE, CANCELED"
    }

@app.get("/api/enums/resource-kind", tags=["Enum Reference"])
async def get_resource_kinds():
    """Get all ResourceKind enum values"""
    return {
        "values": [f"{item.name}" for item in ResourceKind],
        "description": "Bookable resource kinds: PACKAGE, ROOM"
    }

@app.get("/api/enums/error-kind", tags=["Enum Reference"])
async def get_error_kinds():
    """Get all ErrorKind enum values"""
    return {
        "values": [item.value for item in ErrorKind],
        "description": "Failure kinds returned in the detail of HTTP 400 responses"
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AccountService = Depends(get_account_service)
):
    # seeds the default operator on first login
    await get_user(form_data.username)
    user = await service.authenticate(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.post("/api/auth/register", response_model=UserResponse, status_code=201, tags=["Auth"])
async def register(
    request: RegisterRequest,
    service: AccountService = Depends(get_account_service)
):
    """Create a customer account"""
    try:
        return await service.register(
            username=request.username,
            password=request.password,
            email=request.email,
            full_name=request.full_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# PROFILE ENDPOINTS
# ============================================================================

@app.get("/api/profile", response_model=ProfileResponse, tags=["Profile"])
async def get_profile(
    service: AccountService = Depends(get_account_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get the identity fields used to book packages"""
    record = await service.get_eligibility(current_user.user_id)
    return ProfileResponse(
        username=current_user.username,
        email=current_user.email,
        complete=record.is_complete(),
        **record.model_dump(),
    )

@app.put("/api/profile", response_model=ProfileResponse, tags=["Profile"])
async def update_profile(
    request: EligibilityPayload,
    service: AccountService = Depends(get_account_service),
    current_user: User = Depends(get_current_active_user)
):
    """Replace the identity fields used to book packages"""
    try:
        record = await service.update_eligibility(
            current_user.user_id, EligibilityRecord(**request.model_dump())
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))
    return ProfileResponse(
        username=current_user.username,
        email=current_user.email,
        complete=record.is_complete(),
        **record.model_dump(),
    )

# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@app.get("/api/packages", response_model=List[PackageSummary], tags=["Bookings"])
async def list_packages(service: InventoryService = Depends(get_inventory_service)):
    """List packages open for booking"""
    listings = await service.list_packages()
    return [
        PackageSummary.model_validate(listing.package.model_dump())
        for listing in listings
        if listing.package.active
    ]

@app.post("/api/bookings", response_model=ReservationResponse, tags=["Bookings"])
async def book_package(
    request: PackageBookingRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Book seats on a travel package"""
    try:
        reservation = await service.reserve(
            current_user.user_id,
            PackageReservationRequest(**request.model_dump()),
        )
        return ReservationResponse.from_reservation(reservation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))

@app.post("/api/hotels/{hotel_id}/rooms/{room_id}/book", response_model=ReservationResponse, tags=["Bookings"])
async def book_room(
    hotel_id: UUID,
    room_id: UUID,
    request: RoomBookingRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Book rooms of one room type for a stay"""
    try:
        reservation = await service.reserve(
            current_user.user_id,
            RoomReservationRequest(room_id=room_id, hotel_id=hotel_id, **request.model_dump()),
        )
        return ReservationResponse.from_reservation(reservation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))

@app.post("/api/hotels/bookings/{booking_id}/cancel", response_model=ReservationResponse, tags=["Bookings"])
async def cancel_room_booking(
    booking_id: UUID,
    service: CancellationService = Depends(get_cancellation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel one of the caller's room bookings"""
    try:
        reservation = await service.cancel(booking_id, Actor.user(current_user.user_id), ResourceKind.ROOM)
        return ReservationResponse.from_reservation(reservation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))

@app.post("/api/bookings/{booking_id}/cancel", response_model=ReservationResponse, tags=["Bookings"])
async def cancel_package_booking(
    booking_id: UUID,
    service: CancellationService = Depends(get_cancellation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel one of the caller's package bookings"""
    try:
        reservation = await service.cancel(booking_id, Actor.user(current_user.user_id), ResourceKind.PACKAGE)
        return ReservationResponse.from_reservation(reservation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))

@app.get("/api/reservations/{reservation_id}/refund-quote", response_model=RefundQuoteResponse, tags=["Bookings"])
async def get_refund_quote(
    reservation_id: UUID,
    service: CancellationService = Depends(get_cancellation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Advisory cancellation fee for a reservation"""
    try:
        quote = await service.quote_refund(reservation_id, _actor_for(current_user))
        return RefundQuoteResponse.from_quote(reservation_id, quote)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))

@app.get("/api/history", response_model=List[ReservationResponse], tags=["Bookings"])
async def get_history(
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get the caller's reservations, newest first"""
    reservations = await service.get_reservations_by_owner(current_user.user_id)
    return [ReservationResponse.from_reservation(r) for r in reservations]

# ============================================================================
# AVAILABILITY ENDPOINTS
# ============================================================================

@app.get("/api/hotels/{hotel_id}/rooms/{room_id}/availability", response_model=AvailabilityResponse, tags=["Availability"])
async def get_room_availability(
    hotel_id: UUID,
    room_id: UUID,
    check_in: Optional[date] = Query(None, alias="checkIn"),
    check_out: Optional[date] = Query(None, alias="checkOut"),
    service: AvailabilityService = Depends(get_availability_service)
):
    """Remaining rooms of one room type over [checkIn, checkOut)"""
    try:
        remaining = await service.remaining_capacity(room_id, check_in, check_out, hotel_id=hotel_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))
    return AvailabilityResponse(
        hotel_id=hotel_id, room_id=room_id, check_in=check_in, check_out=check_out, remaining=remaining
    )

@app.get("/api/hotels/{hotel_id}/availability", response_model=AvailabilityResponse, tags=["Availability"])
async def get_hotel_availability(
    hotel_id: UUID,
    check_in: Optional[date] = Query(None, alias="checkIn"),
    check_out: Optional[date] = Query(None, alias="checkOut"),
    service: AvailabilityService = Depends(get_availability_service)
):
    """Remaining rooms across every room type of a hotel"""
    try:
        remaining = await service.remaining_for_hotel(hotel_id, check_in, check_out)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))
    return AvailabilityResponse(hotel_id=hotel_id, check_in=check_in, check_out=check_out, remaining=remaining)

# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@app.get("/api/admin/packages/bookings", response_model=List[ReservationResponse], tags=["Admin"])
async def admin_list_package_bookings(
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_admin_user)
):
    """All package bookings, newest first"""
    reservations = await service.get_all_reservations(ResourceKind.PACKAGE)
    return [ReservationResponse.from_reservation(r) for r in reservations]

@app.get("/api/admin/packages/{package_id}/bookings", response_model=PackageBookingsResponse, tags=["Admin"])
async def admin_package_bookings(
    package_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Bookings of one package with the seats currently taken"""
    package = await package_repo.find_by_id(package_id)
    if not package:
        raise HTTPException(status_code=400, detail=NotFoundError("Package not found").to_dict())
    reservations = await service.get_reservations_for_resource(package_id)
    return PackageBookingsResponse(
        package_id=package_id,
        package_name=package.name,
        booking_deadline=package.booking_deadline,
        total_persons=await service.count_active_persons(package_id),
        bookings=[ReservationResponse.from_reservation(r) for r in reservations],
    )

@app.post("/api/admin/packages/bookings/{booking_id}/cancel", response_model=ReservationResponse, tags=["Admin"])
async def admin_cancel_package_booking(
    booking_id: UUID,
    service: CancellationService = Depends(get_cancellation_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Cancel any package booking, including past ones"""
    try:
        reservation = await service.cancel(booking_id, Actor.admin(), ResourceKind.PACKAGE)
        return ReservationResponse.from_reservation(reservation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))

@app.get("/api/admin/rooms/bookings", response_model=List[ReservationResponse], tags=["Admin"])
async def admin_list_room_bookings(
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_admin_user)
):
    """All room bookings, newest first"""
    reservations = await service.get_all_reservations(ResourceKind.ROOM)
    return [ReservationResponse.from_reservation(r) for r in reservations]

@app.get("/api/admin/rooms/{room_id}/bookings", response_model=List[ReservationResponse], tags=["Admin"])
async def admin_room_bookings(
    room_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Bookings of one room type"""
    reservations = await service.get_reservations_for_resource(room_id)
    return [ReservationResponse.from_reservation(r) for r in reservations]

@app.get("/api/admin/rooms/{room_id}/occupancy", response_model=RoomOccupancyResponse, tags=["Admin"])
async def admin_room_occupancy(
    room_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Capacity, active bookings and the next free date of a room type"""
    room = await room_repo.find_by_id(room_id)
    if not room:
        raise HTTPException(status_code=400, detail=NotFoundError("Room not found").to_dict())
    reservations = await service.get_reservations_for_resource(room_id)
    return RoomOccupancyResponse(
        room_id=room_id,
        room_name=room.name,
        total_rooms=room.capacity,
        active_bookings=sum(1 for r in reservations if r.is_active),
        next_available_date=await availability.next_available_date(room_id),
    )

@app.post("/api/admin/rooms/bookings/{booking_id}/cancel", response_model=ReservationResponse, tags=["Admin"])
async def admin_cancel_room_booking(
    booking_id: UUID,
    service: CancellationService = Depends(get_cancellation_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Cancel any room booking, including past ones"""
    try:
        reservation = await service.cancel(booking_id, Actor.admin(), ResourceKind.ROOM)
        return ReservationResponse.from_reservation(reservation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
