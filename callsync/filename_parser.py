"""Best-effort caller metadata from recording file names.

Phone recorders encode the other party in the file name in several
vendor- and locale-specific layouts, e.g.::

    010-1234-5678_20240109.m4a          -> number 01012345678
    통화 녹음 홍길동_20240109_163022.m4a   -> contact 홍길동
    ACME(IT) Kim_260109_162929.m4a       -> contact "ACME(IT) Kim"

Nothing here raises: unmatched fields come back empty / unknown.
"""

import re

from .core.models import CallerInfo, CallType

# Digit classes are ASCII-only so full-width digits in names are left alone
PHONE_PATTERN = re.compile(r"(\d{2,4}[-.]?\d{3,4}[-.]?\d{4})", re.ASCII)
SHORT_CODE_PATTERN = re.compile(r"(?<![_\d])(\d{3,4})(?![_\d])", re.ASCII)

_DATETIME_INFIXES = [
    re.compile(r"_\d{6}_\d{6}", re.ASCII),
    re.compile(r"_\d{8}_\d{6}", re.ASCII),
]

_DATETIME_SUFFIXES = [
    re.compile(r"_\d{6}_\d{6}$", re.ASCII),                              # _YYMMDD_HHMMSS
    re.compile(r"_\d{8}_\d{6}$", re.ASCII),                              # _YYYYMMDD_HHMMSS
    re.compile(r"_\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}$", re.ASCII),      # _YYYY-MM-DD_HH-MM-SS
    re.compile(r"_?\d{14}$", re.ASCII),                                  # YYYYMMDDHHMMSS
]

# Applied in order, every occurrence
RECORDING_LABELS = [
    "통화 녹음 ",
    "통화녹음 ",
    "통화 녹음_",
    "통화녹음_",
    "Call recording ",
    "Call_",
    "Recording_",
]

INCOMING_KEYWORDS = ("수신", "incoming")
OUTGOING_KEYWORDS = ("발신", "outgoing")

SHORT_CODE_PREFIXES = ("15", "16")


def is_date_pattern(digits: str) -> bool:
    """True if the first six digits read as YYMMDD with YY in 20..35."""
    if len(digits) < 6:
        return False
    candidate = digits[:6]
    if not candidate.isdigit():
        return False
    year, month, day = int(candidate[:2]), int(candidate[2:4]), int(candidate[4:6])
    return 20 <= year <= 35 and 1 <= month <= 12 and 1 <= day <= 31


def parse_phone_number(file_name: str) -> str:
    match = PHONE_PATTERN.search(file_name)
    if match:
        digits = match.group(1).replace("-", "").replace(".", "")
        if not is_date_pattern(digits):
            return digits

    # Short codes (114, 1588, 1644 ...), ignoring date/time groups
    stripped = file_name
    for pattern in _DATETIME_INFIXES:
        stripped = pattern.sub("", stripped)
    short = SHORT_CODE_PATTERN.search(stripped)
    if short:
        number = short.group(1)
        if number.startswith(SHORT_CODE_PREFIXES) or len(number) == 3:
            return number

    return ""


def parse_contact_name(file_name: str) -> str:
    name = file_name.rsplit(".", 1)[0] if "." in file_name else file_name

    for label in RECORDING_LABELS:
        name = name.replace(label, "")

    for pattern in _DATETIME_SUFFIXES:
        name = pattern.sub("", name)

    name = PHONE_PATTERN.sub("", name)
    return name.strip("_ -")


def parse_call_type(file_name: str) -> CallType:
    lowered = file_name.lower()
    if any(k in lowered for k in INCOMING_KEYWORDS):
        return CallType.INCOMING
    if any(k in lowered for k in OUTGOING_KEYWORDS):
        return CallType.OUTGOING
    return CallType.UNKNOWN


def parse(file_name: str) -> CallerInfo:
    """Infer phone number, contact name and call direction from a file name."""
    return CallerInfo(
        phone_number=parse_phone_number(file_name),
        contact_name=parse_contact_name(file_name),
        call_type=parse_call_type(file_name),
    )
