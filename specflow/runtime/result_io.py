"""
result_io.py - Validation and normalization of runner result payloads.

External runners submit loosely shaped JSON. Everything goes through
result_from_raw(), which:
- Validates the payload against schemas/result.schema.json
- Derives a missing status from the exit code (0 -> ok, else error)
- Derives a missing error message for error results from stderr or the
  exit code
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from specflow.runtime.errors import InvalidResultError
from specflow.runtime.types import Result, ResultStatus, _iso_to_datetime, utc_now

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "result.schema.json"

# Cached schema to avoid repeated file reads
_RESULT_SCHEMA: Optional[Dict[str, Any]] = None


def _load_result_schema() -> Dict[str, Any]:
    """Load the result schema, caching it."""
    global _RESULT_SCHEMA
    if _RESULT_SCHEMA is None:
        with open(_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _RESULT_SCHEMA = json.load(f)
    return _RESULT_SCHEMA


def validate_result_payload(raw: Any) -> List[str]:
    """Validate a raw payload against the result schema.

    Returns:
        List of validation error messages (empty if valid).
    """
    validator = jsonschema.Draft7Validator(_load_result_schema())
    errors: List[str] = []
    for error in sorted(validator.iter_errors(raw), key=lambda e: list(e.absolute_path)):
        location = "/".join(str(p) for p in error.absolute_path) or "<root>"
        errors.append(f"{location}: {error.message}")
    return errors


def result_from_raw(raw: Any) -> Result:
    """Build a Result from a runner payload.

    Args:
        raw: Decoded JSON payload.

    Returns:
        Normalized Result.

    Raises:
        InvalidResultError: If the payload does not match the schema.
    """
    errors = validate_result_payload(raw)
    if errors:
        logger.warning("Rejected result payload: %s", "; ".join(errors))
        raise InvalidResultError(errors)

    code = raw.get("code")
    stderr = raw.get("stderr")

    status_value = raw.get("status")
    if status_value is None:
        status = ResultStatus.OK if (code or 0) == 0 else ResultStatus.ERROR
    else:
        status = ResultStatus(status_value)

    error_message = raw.get("error_message")
    if status == ResultStatus.ERROR and not error_message:
        if stderr and stderr.strip():
            error_message = stderr.strip()
        elif code is not None:
            error_message = f"Command exited with code {code}"
        else:
            error_message = "Command failed"

    try:
        timestamp = _iso_to_datetime(raw.get("timestamp")) or utc_now()
    except ValueError:
        raise InvalidResultError([f"timestamp: {raw.get('timestamp')!r} is not an ISO-8601 datetime"])

    return Result(
        status=status,
        data=dict(raw.get("data") or {}),
        stdout=raw.get("stdout"),
        stderr=stderr,
        code=code,
        error_message=error_message,
        timestamp=timestamp,
    )
