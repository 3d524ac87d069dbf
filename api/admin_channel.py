"""Admin inventory channel - newline-delimited JSON over TCP

One connection carries exactly one request line and one response line::

    -> {"type": "AUTH", "email": "ops@example.com", "password": "..."}
    <- {"ok": true, "msg": "AUTH_OK", "token": "..."}

Every verb except ``AUTH`` needs a valid ``token``. Input that is not a JSON
object closes the connection without a reply.
"""
import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type
from uuid import UUID

from pydantic import BaseModel, ValidationError

from api.schemas import (
    PackageItem, DestinationItem, HotelItem, RoomItem,
    PackageView, HotelView, RoomView, destination_view,
)
from application.services import AdminAuthService, InventoryService
from domain.errors import InvalidRequestError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)

# room lists can be long, allow lines well above the asyncio default
MAX_LINE_BYTES = 1024 * 1024

Message = Dict[str, Any]


class AdminProtocolError(Exception):
    """Request rejected with ``{ok: false, msg}``"""

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


def _ok(**fields) -> Message:
    return {"ok": True, **fields}


def _err(msg: str) -> Message:
    return {"ok": False, "msg": msg}


def _dump(view: BaseModel) -> Dict[str, Any]:
    return view.model_dump(mode="json", by_alias=True)


class AdminProtocolHandler:
    """Maps one decoded request to one response, independent of the transport"""

    def __init__(self, auth: AdminAuthService, inventory: InventoryService):
        self.auth = auth
        self.inventory = inventory
        self._routes: Dict[str, Callable[[Message], Awaitable[Message]]] = {
            "LIST": self._list_packages,
            "CREATE": self._create_package,
            "UPDATE": self._update_package,
            "DELETE": self._delete_package,
            "DEST_LIST": self._list_destinations,
            "DEST_CREATE": self._create_destination,
            "DEST_UPDATE": self._update_destination,
            "DEST_DELETE": self._delete_destination,
            "HOTEL_LIST": self._list_hotels,
            "HOTEL_CREATE": self._create_hotel,
            "HOTEL_UPDATE": self._update_hotel,
            "HOTEL_DELETE": self._delete_hotel,
            "ROOM_LIST": self._list_rooms,
            "ROOM_SAVE": self._save_rooms,
            "LOGOUT": self._logout,
        }

    async def handle_line(self, line: bytes) -> Optional[Message]:
        """Decode a request line. ``None`` means close without replying."""
        try:
            request = json.loads(line)
        except (ValueError, UnicodeDecodeError):
            return None
        if not isinstance(request, dict):
            return None
        return await self.handle_message(request)

    async def handle_message(self, request: Message) -> Message:
        kind = request.get("type")
        if kind == "AUTH":
            return await self._authenticate(request)

        route = self._routes.get(kind) if isinstance(kind, str) else None
        if route is None:
            return _err("UNKNOWN_TYPE")

        try:
            self.auth.authorize(request.get("token"))
        except UnauthorizedError:
            return _err("UNAUTHORIZED")

        try:
            return await route(request)
        except AdminProtocolError as e:
            return _err(e.msg)
        except NotFoundError:
            return _err("NOT_FOUND")
        except InvalidRequestError as e:
            logger.info("Rejected %s item: %s", kind, e.message)
            return _err("INVALID_ITEM")

    async def _authenticate(self, request: Message) -> Message:
        try:
            session = await self.auth.authenticate(request.get("email"), request.get("password"))
        except UnauthorizedError as e:
            logger.info("Admin AUTH failed: %s", e.message)
            return _err(e.message)
        return _ok(msg="AUTH_OK", token=session.token)

    async def _logout(self, request: Message) -> Message:
        self.auth.logout(request["token"])
        return _ok(msg="LOGGED_OUT")

    # ==================== PACKAGES ====================
    async def _list_packages(self, request: Message) -> Message:
        listings = await self.inventory.list_packages()
        return _ok(items=[
            _dump(PackageView.of(listing.package, listing.package_available))
            for listing in listings
        ])

    async def _create_package(self, request: Message) -> Message:
        package = await self.inventory.create_package(_item(request, PackageItem))
        return _ok(id=str(package.package_id))

    async def _update_package(self, request: Message) -> Message:
        package_id = _uuid(request, "id", "MISSING_ID")
        await self.inventory.update_package(package_id, _item(request, PackageItem))
        return _ok()

    async def _delete_package(self, request: Message) -> Message:
        await self.inventory.delete_package(_uuid(request, "id", "MISSING_ID"))
        return _ok()

    # ==================== DESTINATIONS ====================
    async def _list_destinations(self, request: Message) -> Message:
        listings = await self.inventory.list_destinations()
        return _ok(items=[
            _dump(destination_view(listing.destination, listing.hotels_count, listing.package_id))
            for listing in listings
        ])

    async def _create_destination(self, request: Message) -> Message:
        destination = await self.inventory.create_destination(_item(request, DestinationItem))
        return _ok(id=str(destination.destination_id))

    async def _update_destination(self, request: Message) -> Message:
        destination_id = _uuid(request, "id", "MISSING_ID")
        await self.inventory.update_destination(destination_id, _item(request, DestinationItem))
        return _ok()

    async def _delete_destination(self, request: Message) -> Message:
        await self.inventory.delete_destination(_uuid(request, "id", "MISSING_ID"))
        return _ok()

    # ==================== HOTELS ====================
    async def _list_hotels(self, request: Message) -> Message:
        destination_id = _uuid(request, "destinationId", "MISSING_DESTINATION")
        hotels = await self.inventory.list_hotels(destination_id)
        return _ok(items=[_dump(HotelView.of(h)) for h in hotels])

    async def _create_hotel(self, request: Message) -> Message:
        hotel = await self.inventory.create_hotel(_item(request, HotelItem))
        return _ok(id=str(hotel.hotel_id))

    async def _update_hotel(self, request: Message) -> Message:
        hotel_id = _uuid(request, "id", "MISSING_ID")
        await self.inventory.update_hotel(hotel_id, _item(request, HotelItem))
        return _ok()

    async def _delete_hotel(self, request: Message) -> Message:
        await self.inventory.delete_hotel(_uuid(request, "id", "MISSING_ID"))
        return _ok()

    # ==================== ROOMS ====================
    async def _list_rooms(self, request: Message) -> Message:
        hotel_id = _uuid(request, "hotelId", "MISSING_HOTEL")
        rooms = await self.inventory.list_rooms(hotel_id)
        return _ok(items=[_dump(RoomView.of(r)) for r in rooms])

    async def _save_rooms(self, request: Message) -> Message:
        hotel_id = _uuid(request, "hotelId", "MISSING_HOTEL")
        raw_items = request.get("items")
        if not isinstance(raw_items, list):
            raise AdminProtocolError("NO_ITEMS")
        # non-object entries are skipped
        items = [_parse(entry, RoomItem) for entry in raw_items if isinstance(entry, dict)]
        rooms = await self.inventory.save_rooms(hotel_id, items)
        return _ok(items=[_dump(RoomView.of(r)) for r in rooms])


def _uuid(request: Message, key: str, missing_msg: str) -> UUID:
    raw = request.get(key)
    if raw is None:
        raise AdminProtocolError(missing_msg)
    try:
        return UUID(str(raw))
    except ValueError:
        raise AdminProtocolError("INVALID_ID")


def _item(request: Message, schema: Type[BaseModel]) -> Dict[str, Any]:
    item = request.get("item")
    if not isinstance(item, dict):
        raise AdminProtocolError("INVALID_ITEM")
    return _parse(item, schema)


def _parse(item: Dict[str, Any], schema: Type[BaseModel]) -> Dict[str, Any]:
    try:
        return schema.model_validate(item).model_dump(exclude_unset=True)
    except ValidationError:
        raise AdminProtocolError("INVALID_ITEM")


class AdminChannelServer:
    """asyncio TCP listener serving one task per admin connection"""

    def __init__(self,
                 handler: AdminProtocolHandler,
                 host: str,
                 port: int,
                 read_timeout: float = 30.0):
        self.handler = handler
        self.host = host
        self.port = port
        self.read_timeout = read_timeout
        self._server: Optional[asyncio.AbstractServer] = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._serve_connection, self.host, self.port, limit=MAX_LINE_BYTES
        )
        # port 0 asks the OS for a free port
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info("Admin channel listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Admin channel stopped")

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def _serve_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        try:
            try:
                line = await asyncio.wait_for(reader.readline(), timeout=self.read_timeout)
            except asyncio.TimeoutError:
                logger.info("Admin connection from %s timed out", peer)
                return
            except (ValueError, asyncio.LimitOverrunError):
                logger.info("Admin request from %s exceeded %d bytes", peer, MAX_LINE_BYTES)
                return

            response = await self.handler.handle_line(line)
            if response is None:
                logger.info("Closing admin connection from %s: malformed request", peer)
                return
            writer.write(json.dumps(response).encode("utf-8") + b"\n")
            await writer.drain()
        except Exception:
            logger.exception("Admin connection from %s failed", peer)
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()
