"""File-backed collaborators for running off-device (exports, fixtures, CI)."""

import re
import json
import logging
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...core.models import CallLogEntry, CallType, Identity, IdentityConfig
from ..base import CallHistorySource, ContactsSource, IdentityProvider

logger = logging.getLogger("CallSync.Plugin.Local")

# Android CallLog.Calls type codes
_CALL_TYPE_CODES = {
    1: CallType.INCOMING,
    2: CallType.OUTGOING,
}


def normalize_number(phone_number: str) -> str:
    return re.sub(r"\D", "", phone_number or "", flags=re.ASCII)


class StaticIdentityProvider(IdentityProvider):
    """Identity and approval taken verbatim from the config file."""

    def __init__(self, config: IdentityConfig):
        self.config = config

    def current_identity(self) -> Optional[Identity]:
        if not self.config.user_id:
            return None
        return Identity(
            id=self.config.user_id,
            display_name=self.config.display_name,
            email=self.config.email,
        )

    def is_authorized(self, identity_id: str) -> bool:
        return self.config.approved and identity_id == self.config.user_id


class JsonCallHistorySource(CallHistorySource):
    """
    Reads an exported call log: a JSON list of objects with
    ``number``, ``name``, ``type`` (1/2/3... or a name), ``date`` (epoch ms)
    and ``duration`` (seconds).
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _load(self) -> List[Dict[str, Any]]:
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("calls", [])
        return data

    @staticmethod
    def _to_entry(raw: Dict[str, Any]) -> CallLogEntry:
        call_type = raw.get("type", CallType.UNKNOWN.value)
        if isinstance(call_type, int):
            call_type = _CALL_TYPE_CODES.get(call_type, CallType.UNKNOWN)
        return CallLogEntry(
            phone_number=raw.get("number") or "",
            contact_name=raw.get("name") or "",
            call_type=call_type,
            timestamp=int(raw["date"]),
            duration=int(raw.get("duration") or 0),
        )

    def query_calls(self, start_ms: int, end_ms: int) -> List[CallLogEntry]:
        entries = []
        for raw in self._load():
            try:
                entry = self._to_entry(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed call log row {raw!r}: {e}")
                continue
            if start_ms <= entry.timestamp <= end_ms:
                entries.append(entry)
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)


class YamlContactsSource(ContactsSource):
    """
    Contacts from a YAML mapping of display name to one or more numbers::

        Hong Gildong: 010-1234-5678
        ACME Support: [1588-0000, 02-123-4567]
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self._index: Optional[Dict[str, str]] = None

    def _build_index(self) -> Dict[str, str]:
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        index = {}
        for name, numbers in data.items():
            if isinstance(numbers, (str, int)):
                numbers = [numbers]
            for number in numbers or []:
                digits = normalize_number(str(number))
                if digits:
                    index.setdefault(digits, str(name))
        return index

    def lookup_name(self, phone_number: str) -> Optional[str]:
        if self._index is None:
            self._index = self._build_index()
        return self._index.get(normalize_number(phone_number))
