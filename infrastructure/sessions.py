"""In-memory admin session store"""
import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
from uuid import UUID

from domain.entities import AdminSession
from domain.repositories import AdminSessionStore

logger = logging.getLogger(__name__)


class InMemoryAdminSessionStore(AdminSessionStore):
    """Token map shared by all admin channel connections.

    ``ttl=None`` keeps tokens forever; otherwise a token stops resolving
    once it is older than ``ttl`` and is dropped on the next lookup.
    """

    def __init__(self, ttl: Optional[timedelta] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._sessions: Dict[str, AdminSession] = {}
        self._lock = threading.Lock()
        self._ttl = ttl
        self._clock = clock

    def issue(self, admin_user_id: UUID) -> AdminSession:
        session = AdminSession(
            token=str(uuid.uuid4()),
            admin_user_id=admin_user_id,
            issued_at=self._clock(),
        )
        with self._lock:
            self._sessions[session.token] = session
        logger.info("Issued admin session for %s", admin_user_id)
        return session

    def resolve(self, token: Optional[str]) -> Optional[AdminSession]:
        if not token or not isinstance(token, str):
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if self._ttl is not None and self._clock() - session.issued_at > self._ttl:
                del self._sessions[token]
                logger.info("Admin session for %s expired", session.admin_user_id)
                return None
            return session

    def revoke(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None
