"""Record Codec: one entity per text line, nested lists and maps included.

Invariants:
    - Scalar fields joined by FIELD_SEP in a fixed order per kind
    - The terminal field is read to end of line (never re-split)
    - Lists use ITEM_SEP between entries; maps additionally use PAIR_SEP between key and value
    - Empty collections encode as an empty field, never an omitted one
    - Free-text fields escape backslash, FIELD_SEP, CR and LF; collection fields are
      numeric only, so ITEM_SEP and PAIR_SEP never need escaping
    - encode_record(decode_record(kind, line)) == line for every canonical line
    - Malformed input raises DecodeError; nothing else escapes decode_record

Design Decisions:
    - Enums persisted as fixed integers (_ROLE_CODES / _STATUS_CODES), decoupled
      from the str values used by the API
    - Field layouts kept as tuples next to the encoders so both directions share one order
"""

import re

from eventdesk.core.domain_types import (
    AttendeeId, EntityKind, EventId, EventStatus, ItemId, Role, UserId,
)
from eventdesk.core.entities import Attendee, Entity, Event, InventoryItem, User
from eventdesk.core.errors import DecodeError

FIELD_SEP = "|"
ITEM_SEP = ";"
PAIR_SEP = ":"
ESCAPE = "\\"

_ESCAPED_CHARS = {ESCAPE: ESCAPE, FIELD_SEP: FIELD_SEP, "\n": "n", "\r": "r"}
_UNESCAPED_CHARS = {v: k for k, v in _ESCAPED_CHARS.items()}
_DIGITS = re.compile(r"[0-9]+")

_ROLE_CODES: dict[Role, int] = {Role.ADMIN: 0, Role.REGULAR_USER: 1}
_STATUS_CODES: dict[EventStatus, int] = {
    EventStatus.UPCOMING: 0,
    EventStatus.ONGOING: 1,
    EventStatus.COMPLETED: 2,
    EventStatus.CANCELED: 3,
}
_ROLES_BY_CODE = {code: role for role, code in _ROLE_CODES.items()}
_STATUSES_BY_CODE = {code: status for status, code in _STATUS_CODES.items()}

FIELD_LAYOUTS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.USER: ("id", "username", "password", "role"),
    EntityKind.EVENT: (
        "id", "status", "attendee_ids", "allocations",
        "name", "date", "time", "location", "category", "description",
    ),
    EntityKind.ATTENDEE: ("id", "primary_event_id", "checked_in", "name", "contact_info"),
    EntityKind.INVENTORY: ("id", "total_quantity", "allocated_quantity", "name", "description"),
}


# --- Text escaping ------------------------------------------------------------

def escape_text(text: str) -> str:
    return "".join(
        ESCAPE + _ESCAPED_CHARS[ch] if ch in _ESCAPED_CHARS else ch
        for ch in text
    )


def unescape_text(raw: str, line: str = "") -> str:
    out: list[str] = []
    chars = iter(raw)
    for ch in chars:
        if ch != ESCAPE:
            out.append(ch)
            continue
        nxt = next(chars, None)
        if nxt is None:
            raise DecodeError("dangling escape character", line)
        if nxt not in _UNESCAPED_CHARS:
            raise DecodeError(f"unknown escape sequence '\\{nxt}'", line)
        out.append(_UNESCAPED_CHARS[nxt])
    return "".join(out)


def split_fields(line: str, count: int) -> list[str]:
    """Split on unescaped FIELD_SEP into exactly `count` raw fields.

    The last field takes the rest of the line verbatim.
    """
    fields: list[str] = []
    start = 0
    i = 0
    while i < len(line) and len(fields) < count - 1:
        ch = line[i]
        if ch == ESCAPE:
            i += 2
            continue
        if ch == FIELD_SEP:
            fields.append(line[start:i])
            start = i + 1
        i += 1
    if len(fields) != count - 1:
        raise DecodeError(f"expected {count} fields, found {len(fields) + 1}", line)
    fields.append(line[start:])
    return fields


# --- Scalar / collection parsing ----------------------------------------------

def _parse_int(raw: str, name: str, line: str) -> int:
    if not _DIGITS.fullmatch(raw):
        raise DecodeError(f"field '{name}' is not a non-negative integer: {raw!r}", line)
    return int(raw)


def _parse_id(raw: str, name: str, line: str) -> int:
    value = _parse_int(raw, name, line)
    if value == 0:
        raise DecodeError(f"field '{name}' must be a positive id", line)
    return value


def _encode_id_list(ids: list[int]) -> str:
    return ITEM_SEP.join(str(i) for i in ids)


def _decode_id_list(raw: str, line: str) -> list[int]:
    if raw == "":
        return []
    ids = [_parse_id(part, "attendee_ids", line) for part in raw.split(ITEM_SEP)]
    if len(set(ids)) != len(ids):
        raise DecodeError("duplicate id in attendee set", line)
    return ids


def _encode_quantity_map(entries: dict[int, int]) -> str:
    return ITEM_SEP.join(f"{key}{PAIR_SEP}{value}" for key, value in entries.items())


def _decode_quantity_map(raw: str, line: str) -> dict[int, int]:
    if raw == "":
        return {}
    result: dict[int, int] = {}
    for entry in raw.split(ITEM_SEP):
        key_raw, sep, value_raw = entry.partition(PAIR_SEP)
        if not sep:
            raise DecodeError(f"allocation entry without '{PAIR_SEP}': {entry!r}", line)
        key = _parse_id(key_raw, "allocations", line)
        value = _parse_int(value_raw, "allocations", line)
        if value == 0:
            raise DecodeError(f"zero allocation for item {key}", line)
        if key in result:
            raise DecodeError(f"duplicate allocation key {key}", line)
        result[key] = value
    return result


def _decode_enum(raw: str, table: dict, name: str, line: str):
    code = _parse_int(raw, name, line)
    if code not in table:
        raise DecodeError(f"unrecognized {name} code {code}", line)
    return table[code]


# --- Per-kind encoders ----------------------------------------------------------

def _encode_user(user: User) -> list[str]:
    return [
        str(user.id), escape_text(user.username),
        escape_text(user.password), str(_ROLE_CODES[user.role]),
    ]


def _encode_event(event: Event) -> list[str]:
    return [
        str(event.id), str(_STATUS_CODES[event.status]),
        _encode_id_list(event.attendee_ids),
        _encode_quantity_map(event.allocations),
        escape_text(event.name), escape_text(event.date),
        escape_text(event.time), escape_text(event.location),
        escape_text(event.category), escape_text(event.description),
    ]


def _encode_attendee(attendee: Attendee) -> list[str]:
    return [
        str(attendee.id), str(attendee.primary_event_id),
        "1" if attendee.checked_in else "0",
        escape_text(attendee.name), escape_text(attendee.contact_info),
    ]


def _encode_item(item: InventoryItem) -> list[str]:
    return [
        str(item.id), str(item.total_quantity), str(item.allocated_quantity),
        escape_text(item.name), escape_text(item.description),
    ]


def encode_record(entity: Entity) -> str:
    """Encode one entity as a single line (no trailing newline)."""
    if isinstance(entity, User):
        parts = _encode_user(entity)
    elif isinstance(entity, Event):
        parts = _encode_event(entity)
    elif isinstance(entity, Attendee):
        parts = _encode_attendee(entity)
    elif isinstance(entity, InventoryItem):
        parts = _encode_item(entity)
    else:
        raise TypeError(f"Cannot encode {type(entity).__name__}")
    return FIELD_SEP.join(parts)


# --- Per-kind decoders ----------------------------------------------------------

def _decode_user(f: list[str], line: str) -> User:
    username = unescape_text(f[1], line)
    if not username:
        raise DecodeError("empty username", line)
    return User(
        id=UserId(_parse_id(f[0], "id", line)),
        username=username,
        password=unescape_text(f[2], line),
        role=_decode_enum(f[3], _ROLES_BY_CODE, "role", line),
    )


def _decode_event(f: list[str], line: str) -> Event:
    return Event(
        id=EventId(_parse_id(f[0], "id", line)),
        status=_decode_enum(f[1], _STATUSES_BY_CODE, "status", line),
        attendee_ids=[AttendeeId(i) for i in _decode_id_list(f[2], line)],
        allocations={
            ItemId(k): v for k, v in _decode_quantity_map(f[3], line).items()
        },
        name=unescape_text(f[4], line),
        date=unescape_text(f[5], line),
        time=unescape_text(f[6], line),
        location=unescape_text(f[7], line),
        category=unescape_text(f[8], line),
        description=unescape_text(f[9], line),
    )


def _decode_attendee(f: list[str], line: str) -> Attendee:
    if f[2] not in ("0", "1"):
        raise DecodeError(f"checked_in flag must be 0 or 1: {f[2]!r}", line)
    return Attendee(
        id=AttendeeId(_parse_id(f[0], "id", line)),
        primary_event_id=EventId(_parse_int(f[1], "primary_event_id", line)),
        checked_in=f[2] == "1",
        name=unescape_text(f[3], line),
        contact_info=unescape_text(f[4], line),
    )


def _decode_item(f: list[str], line: str) -> InventoryItem:
    total = _parse_int(f[1], "total_quantity", line)
    allocated = _parse_int(f[2], "allocated_quantity", line)
    if allocated > total:
        raise DecodeError(f"allocated {allocated} exceeds total {total}", line)
    name = unescape_text(f[3], line)
    if not name:
        raise DecodeError("empty item name", line)
    return InventoryItem(
        id=ItemId(_parse_id(f[0], "id", line)),
        total_quantity=total,
        allocated_quantity=allocated,
        name=name,
        description=unescape_text(f[4], line),
    )


_DECODERS = {
    EntityKind.USER: _decode_user,
    EntityKind.EVENT: _decode_event,
    EntityKind.ATTENDEE: _decode_attendee,
    EntityKind.INVENTORY: _decode_item,
}


def decode_record(kind: EntityKind, line: str) -> Entity:
    """Decode one line of the given kind. Raises DecodeError when malformed."""
    line = line.rstrip("\r\n")
    fields = split_fields(line, len(FIELD_LAYOUTS[kind]))
    return _DECODERS[kind](fields, line)
