"""Blocking client for the admin inventory channel"""
import json
import logging
import socket
from typing import Any, Dict, List, Optional
from uuid import UUID

from domain.enums import ErrorKind
from domain.errors import ReservationError
from infrastructure.config import ADMIN_SOCKET_HOST, ADMIN_SOCKET_PORT

logger = logging.getLogger(__name__)


class AdminChannelError(ReservationError):
    """Failed admin channel call.

    ``kind`` is ``NetworkFailure`` when the server could not be reached or
    closed the connection without replying, ``Unauthorized`` for a missing or
    stale token and ``InvalidRequest`` for any other rejection.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class AdminSocketClient:
    def __init__(self,
                 host: str = ADMIN_SOCKET_HOST,
                 port: int = ADMIN_SOCKET_PORT,
                 timeout: float = 10.0,
                 token: Optional[str] = None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.token = token

    def send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send one request line and read one response line"""
        data = json.dumps(payload, default=str).encode("utf-8") + b"\n"
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout) as sock:
                sock.sendall(data)
                with sock.makefile("r", encoding="utf-8") as stream:
                    line = stream.readline()
        except OSError as e:
            raise AdminChannelError(
                ErrorKind.NETWORK_FAILURE, f"Admin channel {self.host}:{self.port} unreachable: {e}"
            ) from e

        if not line.strip():
            raise AdminChannelError(ErrorKind.NETWORK_FAILURE, "Admin channel closed without a reply")
        try:
            reply = json.loads(line)
        except ValueError as e:
            raise AdminChannelError(ErrorKind.NETWORK_FAILURE, "Admin channel sent malformed JSON") from e
        if not isinstance(reply, dict):
            raise AdminChannelError(ErrorKind.NETWORK_FAILURE, "Admin channel sent malformed JSON")
        return reply

    def call(self, request_type: str, **fields) -> Dict[str, Any]:
        payload = {"type": request_type, **fields}
        if self.token is not None:
            payload["token"] = self.token
        reply = self.send(payload)
        if not reply.get("ok"):
            msg = reply.get("msg") or "ERROR"
            logger.debug("Admin channel rejected %s: %s", request_type, msg)
            kind = ErrorKind.UNAUTHORIZED if msg == "UNAUTHORIZED" else ErrorKind.INVALID_REQUEST
            raise AdminChannelError(kind, msg)
        return reply

    # ==================== SESSION ====================
    def auth(self, email: str, password: str) -> str:
        self.token = None
        reply = self.call("AUTH", email=email, password=password)
        self.token = reply["token"]
        return self.token

    def logout(self) -> None:
        self.call("LOGOUT")
        self.token = None

    # ==================== PACKAGES ====================
    def list(self) -> List[Dict[str, Any]]:
        return self.call("LIST")["items"]

    def create(self, item: Dict[str, Any]) -> UUID:
        return UUID(self.call("CREATE", item=item)["id"])

    def update(self, package_id: UUID, item: Dict[str, Any]) -> None:
        self.call("UPDATE", id=str(package_id), item=item)

    def delete(self, package_id: UUID) -> None:
        self.call("DELETE", id=str(package_id))

    # ==================== DESTINATIONS ====================
    def list_destinations(self) -> List[Dict[str, Any]]:
        return self.call("DEST_LIST")["items"]

    def create_destination(self, item: Dict[str, Any]) -> UUID:
        return UUID(self.call("DEST_CREATE", item=item)["id"])

    def update_destination(self, destination_id: UUID, item: Dict[str, Any]) -> None:
        self.call("DEST_UPDATE", id=str(destination_id), item=item)

    def delete_destination(self, destination_id: UUID) -> None:
        self.call("DEST_DELETE", id=str(destination_id))

    # ==================== HOTELS ====================
    def list_hotels(self, destination_id: UUID) -> List[Dict[str, Any]]:
        return self.call("HOTEL_LIST", destinationId=str(destination_id))["items"]

    def create_hotel(self, item: Dict[str, Any]) -> UUID:
        return UUID(self.call("HOTEL_CREATE", item=item)["id"])

    def update_hotel(self, hotel_id: UUID, item: Dict[str, Any]) -> None:
        self.call("HOTEL_UPDATE", id=str(hotel_id), item=item)

    def delete_hotel(self, hotel_id: UUID) -> None:
        self.call("HOTEL_DELETE", id=str(hotel_id))

    # ==================== ROOMS ====================
    def list_rooms(self, hotel_id: UUID) -> List[Dict[str, Any]]:
        return self.call("ROOM_LIST", hotelId=str(hotel_id))["items"]

    def save_rooms(self, hotel_id: UUID, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self.call("ROOM_SAVE", hotelId=str(hotel_id), items=items)["items"]
