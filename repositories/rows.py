"""
Row conversion and error helpers shared by the repository modules.

Supabase returns timestamps as ISO-8601 strings (sometimes with a trailing 'Z')
and numeric columns as strings, ints or floats depending on the column type.
Everything here converts to the domain's types: aware UTC datetimes and Decimals.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Mapping, Optional

from postgrest.exceptions import APIError  # type: ignore[import-not-found]

from domain.errors import PersistenceError, ValidationError
from domain.time import as_utc, require_utc_timestamp

logger = logging.getLogger(__name__)

# PostgreSQL error code for unique_violation
UNIQUE_VIOLATION = "23505"


def to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    return as_utc(dt)


def parse_optional_datetime(row: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = row.get(key)
    return parse_utc_datetime(value) if value else None


def parse_decimal(value: Any, *, name: str) -> Decimal:
    # str() first so floats keep their printed value instead of binary noise
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{name} is not a valid number: {value!r}") from e


def error_code(error: Any) -> Optional[str]:
    """Extract a PostgreSQL error code from a response error or APIError."""

    code = getattr(error, "code", None)
    if code is None and isinstance(error, Mapping):
        code = error.get("code")
    return str(code) if code is not None else None


def is_unique_violation(error: Any) -> bool:
    return error_code(error) == UNIQUE_VIOLATION


def run_query(query: Any, action: str) -> List[Mapping[str, Any]]:
    """
    Execute a query builder and return its rows.

    Raises:
        PersistenceError: the store rejected the query or could not be reached.
    """

    try:
        response = query.execute()
    except APIError as e:
        logger.error("Supabase query failed", extra={"action": action, "code": error_code(e)})
        raise PersistenceError(f"Failed to {action}: {e}", db_code=error_code(e)) from e

    error = getattr(response, "error", None)
    if error:
        raise PersistenceError(f"Failed to {action}: {error}", db_code=error_code(error))

    return getattr(response, "data", None) or []


def run_rpc(call: Callable[[], Any], action: str) -> Mapping[str, Any]:
    """
    Execute an RPC returning a JSON object.

    supabase-py raises APIError for some JSON results of PostgreSQL functions,
    success included, so a payload carrying a `success` key is taken from the
    exception body.
    """

    try:
        response = call()
    except APIError as e:
        try:
            error_data = e.json() if callable(getattr(e, "json", None)) else {}
        except (TypeError, ValueError):
            error_data = {}

        if isinstance(error_data, Mapping) and "success" in error_data:
            return error_data
        raise PersistenceError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise PersistenceError(f"Failed to {action}: {error}")

    data = getattr(response, "data", None)
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, Mapping):
        raise PersistenceError(f"Failed to {action}: unexpected RPC result {data!r}")
    return data


__all__ = [
    "UNIQUE_VIOLATION",
    "to_iso_utc",
    "parse_utc_datetime",
    "parse_optional_datetime",
    "parse_decimal",
    "error_code",
    "is_unique_violation",
    "run_query",
    "run_rpc",
]
