"""
Ledger Codec

Turns the two ledger collections into storage blobs and back.

Format (version 1):
    {"version": 1, "items": [ {...camelCase entity...}, ... ]}

The first releases of the savings app wrote a bare JSON array with no
version tag. Those blobs are still accepted and read as version 0; the
next save rewrites them in the current format.

Anything that is not valid JSON, has the wrong shape, carries a newer
version than we understand, or contains an invalid entity raises
PersistenceError. The caller decides what to do with that; the ledger
store falls back to its defaults.
"""

import json
from typing import Optional, Sequence

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tabunganku.exceptions import PersistenceError
from tabunganku.models.ledger import Student, Transaction


SCHEMA_VERSION = 1
LEGACY_VERSION = 0

_students_adapter = TypeAdapter(list[Student])
_transactions_adapter = TypeAdapter(list[Transaction])


def encode_collection(items: Sequence[BaseModel]) -> str:
    """Serialize entities into a versioned blob."""
    payload = {
        "version": SCHEMA_VERSION,
        "items": [item.model_dump(mode="json", by_alias=True) for item in items],
    }
    return json.dumps(payload, ensure_ascii=False)


def _unwrap(blob: str, key: str) -> tuple[int, list]:
    """Return (version, raw items) or raise PersistenceError."""
    try:
        payload = json.loads(blob)
    except (json.JSONDecodeError, TypeError) as e:
        raise PersistenceError(f"'{key}' is not valid JSON: {e}")

    if isinstance(payload, list):
        return LEGACY_VERSION, payload

    if not isinstance(payload, dict):
        raise PersistenceError(f"'{key}' has unexpected type {type(payload).__name__}")

    version = payload.get("version")
    items = payload.get("items")
    if not isinstance(version, int) or isinstance(version, bool):
        raise PersistenceError(f"'{key}' has no usable version tag")
    if version > SCHEMA_VERSION:
        raise PersistenceError(
            f"'{key}' was written by a newer version (v{version} > v{SCHEMA_VERSION})"
        )
    if not isinstance(items, list):
        raise PersistenceError(f"'{key}' has no items list")
    return version, items


def _decode(blob: Optional[str], key: str, adapter: TypeAdapter) -> Optional[list]:
    if blob is None:
        return None
    _, items = _unwrap(blob, key)
    try:
        return adapter.validate_python(items)
    except PydanticValidationError as e:
        raise PersistenceError(
            f"'{key}' contains invalid records ({e.error_count()} errors)"
        )


def decode_students(blob: Optional[str], key: str = "students") -> Optional[list[Student]]:
    """Decode a students blob. None in, None out."""
    return _decode(blob, key, _students_adapter)


def decode_transactions(
    blob: Optional[str],
    key: str = "transactions",
) -> Optional[list[Transaction]]:
    """Decode a transactions blob. None in, None out."""
    return _decode(blob, key, _transactions_adapter)


def blob_version(blob: str) -> int:
    """Version tag of a blob (0 for the legacy bare-array format)."""
    version, _ = _unwrap(blob, "blob")
    return version
