"""Append-only booking audit log"""
import logging
import os
from typing import Optional

from domain.entities import Reservation

logger = logging.getLogger(__name__)


class BookingAuditLog:
    """Writes one line per accepted reservation.

    Lines go through a dedicated non-propagating logger with a delayed
    FileHandler, so concurrent appends are serialised by the handler lock.
    Writing is best-effort: errors are logged and never raised.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._logger = logging.getLogger(f"bookings.audit.{self.path}")
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = logging.FileHandler(self.path, mode="a", encoding="utf-8", delay=True)
            handler.setFormatter(logging.Formatter("%(asctime)s | %(message)s"))
            self._logger.addHandler(handler)

    @staticmethod
    def format_line(reservation: Reservation) -> str:
        line = (
            f"booking {reservation.reservation_id} | kind={reservation.resource_kind.value} "
            f"| user={reservation.owner_email} | resource={reservation.resource_name or reservation.resource_id} "
            f"| qty={reservation.quantity} | total={reservation.price_total} "
            f"| id={reservation.id_number} | name={reservation.customer_name} "
            f"| txn={reservation.transaction_id}"
        )
        if reservation.date_range is not None:
            line += f" | stay={reservation.date_range.check_in}..{reservation.date_range.check_out}"
        return line

    def record(self, reservation: Reservation) -> None:
        try:
            self._logger.info(self.format_line(reservation))
        except Exception:
            logger.warning("Could not write audit line for %s", reservation.reservation_id, exc_info=True)

    def close(self) -> None:
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)


class NullAuditLog(BookingAuditLog):
    """Audit log that drops every line"""

    def __init__(self, path: Optional[str] = None):
        self.path = None

    def record(self, reservation: Reservation) -> None:
        logger.debug("Audit disabled, dropping line for %s", reservation.reservation_id)

    def close(self) -> None:
        pass
