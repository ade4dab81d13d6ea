"""Match recordings against the device call log."""

import logging
from datetime import timedelta
from typing import Optional

from . import filename_parser
from .core.models import CallerInfo, CallLogEntry
from .providers.base import CallHistorySource, ContactsSource

logger = logging.getLogger("CallSync.Correlator")

DEFAULT_TOLERANCE = timedelta(minutes=5)


class CallLogCorrelator:
    """
    Finds the call-log entry closest in time to a recording.

    Lookup failures of any kind (missing permission, unreadable export,
    broken contacts source) degrade to "no match" so callers can fall
    back to the file name.
    """

    def __init__(
        self,
        history: Optional[CallHistorySource],
        contacts: Optional[ContactsSource] = None,
        tolerance: timedelta = DEFAULT_TOLERANCE,
    ):
        self.history = history
        self.contacts = contacts
        self.tolerance = tolerance

    @property
    def tolerance_ms(self) -> int:
        return int(self.tolerance.total_seconds() * 1000)

    def find_matching_call(self, timestamp: int) -> Optional[CallLogEntry]:
        if self.history is None:
            return None

        try:
            candidates = self.history.query_calls(
                timestamp - self.tolerance_ms, timestamp + self.tolerance_ms
            )
        except Exception as e:
            # PermissionError included: an unreadable call log is just "no match"
            logger.debug(f"Call log query failed: {e}")
            return None

        best: Optional[CallLogEntry] = None
        smallest_diff = None
        for entry in candidates:
            diff = abs(entry.timestamp - timestamp)
            if diff > self.tolerance_ms:
                continue
            # strict comparison keeps the source's order on ties
            if smallest_diff is None or diff < smallest_diff:
                smallest_diff = diff
                best = entry

        if best is None:
            return None

        if not best.contact_name:
            best = best.model_copy(update={"contact_name": self.lookup_contact_name(best.phone_number)})
        return best

    def lookup_contact_name(self, phone_number: str) -> str:
        if not phone_number or not phone_number.strip() or self.contacts is None:
            return ""
        try:
            return self.contacts.lookup_name(phone_number) or ""
        except Exception as e:
            logger.debug(f"Contact lookup failed for {phone_number}: {e}")
            return ""

    def resolve(self, file_name: str, recorded_at: int) -> CallerInfo:
        """Caller info from the call log, falling back to the file name."""
        entry = self.find_matching_call(recorded_at)
        if entry is not None:
            logger.debug(f"Matched {file_name} to call at {entry.timestamp}")
            return entry.to_caller_info()
        return filename_parser.parse(file_name)
