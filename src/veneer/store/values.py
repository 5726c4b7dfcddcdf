"""Store value helpers: BSON types in, template-friendly values out.

Documents come back from pymongo holding BSON wrapper types (``ObjectId``,
``Int64``, ``Decimal128``, ``Binary``, ``Timestamp`` ...). Templates want
plain Python values, and document links need to carry enough type
information for the API to look the same ``_id`` up again. These helpers
cover both directions.
"""

import datetime
import decimal
import uuid
from collections.abc import Mapping
from typing import Any

from bson import Binary, Code, Decimal128, Int64, MaxKey, MinKey, ObjectId, Regex, Timestamp
from bson.dbref import DBRef
from bson.errors import InvalidId

from veneer.errors import HTTPError

# ``id_type`` query parameter values understood by the document API
ID_TYPES = frozenset(
    {"OID", "STRING_OID", "STRING", "NUMBER", "BOOLEAN", "DATE", "NULL", "MINKEY", "MAXKEY"}
)

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.UTC)


def unwrap(value: Any) -> Any:
    """Recursively convert BSON values into plain Python values.

    Nested documents become dicts and arrays become lists. Identifiers,
    regexes and code become strings, numeric wrappers become ``int`` or
    ``Decimal``, timestamps and naive datetimes become aware UTC
    datetimes, binary data becomes ``bytes``. Anything else is returned
    unchanged.
    """
    match value:
        case None | bool() | str():
            return value
        case Mapping():
            return {str(k): unwrap(v) for k, v in value.items()}
        case list() | tuple():
            return [unwrap(v) for v in value]
        case ObjectId():
            return str(value)
        case Int64():
            return int(value)
        case Decimal128():
            return value.to_decimal()
        case datetime.datetime():
            return value if value.tzinfo else value.replace(tzinfo=datetime.UTC)
        case Timestamp():
            return value.as_datetime()
        case Binary():
            if value.subtype == 4:
                return str(value.as_uuid())
            return bytes(value)
        case uuid.UUID():
            return str(value)
        case Regex():
            return value.pattern
        case Code():
            return str(value)
        case DBRef():
            return {"$ref": value.collection, "$id": unwrap(value.id)}
        case MinKey() | MaxKey():
            return str(value)
        case _:
            return value


def detect_id_type(value: Any) -> str | None:
    """The ``id_type`` a document URL needs to address *value*.

    ``None`` means the API's default lookup (``ObjectId``, falling back
    to a string) already finds the document, so no parameter is needed.
    """
    match value:
        case ObjectId():
            return None
        case None:
            return "NULL"
        case bool():
            return "BOOLEAN"
        case int() | float() | decimal.Decimal() | Decimal128():
            return "NUMBER"
        case datetime.datetime():
            return "DATE"
        case MinKey():
            return "MINKEY"
        case MaxKey():
            return "MAXKEY"
        case _:
            return "STRING"


def extract_id_value(value: Any) -> str:
    """The URL path segment for an ``_id`` value."""
    match value:
        case None:
            return "null"
        case bool():
            return "true" if value else "false"
        case datetime.datetime():
            aware = value if value.tzinfo else value.replace(tzinfo=datetime.UTC)
            return str((aware - _EPOCH) // datetime.timedelta(milliseconds=1))
        case MinKey() | MaxKey():
            return "1"
        case _:
            return str(value)


def id_descriptor(value: Any) -> dict[str, Any]:
    """``{"value", "type", "needs_param"}`` for an item's ``_id``."""
    id_type = detect_id_type(value)
    return {
        "value": extract_id_value(value),
        "type": id_type,
        "needs_param": id_type is not None,
    }


def build_document_url(base_path: str, id_value: Any, query: str = "") -> str:
    """Link to the document whose ``_id`` is *id_value* under *base_path*.

    Appends ``id_type=`` when the id is not a plain ``ObjectId``. Any
    existing *query* string is kept.
    """
    url = f"{base_path.rstrip('/')}/{extract_id_value(id_value)}"
    params = [query] if query else []
    id_type = detect_id_type(id_value)
    if id_type is not None:
        params.append(f"id_type={id_type}")
    if params:
        url += "?" + "&".join(params)
    return url


def parse_id(raw: str, id_type: str | None = None) -> Any:
    """Turn a URL path segment back into an ``_id`` value.

    Raises:
        HTTPError: 400 when *raw* cannot be read as *id_type*.
    """
    kind = (id_type or "STRING_OID").upper()
    if kind not in ID_TYPES:
        raise HTTPError(status=400, detail=f"Unknown id_type: {id_type}")
    try:
        match kind:
            case "STRING_OID":
                return ObjectId(raw) if ObjectId.is_valid(raw) else raw
            case "OID":
                return ObjectId(raw)
            case "STRING":
                return raw
            case "NUMBER":
                return _parse_number(raw)
            case "BOOLEAN":
                if raw.lower() not in ("true", "false"):
                    raise ValueError(raw)
                return raw.lower() == "true"
            case "DATE":
                return _EPOCH + datetime.timedelta(milliseconds=int(raw))
            case "NULL":
                return None
            case "MINKEY":
                return MinKey()
            case "MAXKEY":
                return MaxKey()
    except (InvalidId, ValueError, TypeError, ArithmeticError) as exc:
        raise HTTPError(status=400, detail=f"Invalid {kind} id: {raw}") from exc
    return raw


def _parse_number(raw: str) -> int | float | decimal.Decimal:
    try:
        return int(raw)
    except ValueError:
        pass
    number = float(raw)
    if str(number) == raw:
        return number
    return decimal.Decimal(raw)
