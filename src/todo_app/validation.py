"""
Input validation helpers shared by the request schemas and the
validation-error handler.

Requests are validated before any TodoService operation runs; a failure is
reported as a field -> message mapping instead of reaching the service.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional


# PUBLIC_INTERFACE
def require_non_empty(value: str, field: str, max_length: Optional[int] = None) -> str:
    """
    Return ``value`` stripped of surrounding whitespace.

    The length limit applies to the stripped value, so padding around an
    otherwise valid title is never counted against it.

    Raises:
        ValueError: if nothing is left after stripping, or the stripped value
            is longer than ``max_length``.
    """
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"The {field} field is required.")
    if max_length is not None and len(stripped) > max_length:
        raise ValueError(f"The {field} field must not be greater than {max_length} characters.")
    return stripped


def _field_name(loc: Iterable[Any]) -> str:
    # Drop the 'body'/'query'/'path' prefix FastAPI puts in front of the location
    parts = [str(p) for p in loc]
    if parts and parts[0] in {"body", "query", "path"}:
        parts = parts[1:]
    return ".".join(parts) or "__root__"


def _message(error: Mapping[str, Any]) -> str:
    msg = str(error.get("msg", "Invalid value"))
    # Pydantic prefixes messages raised from validators with "Value error, "
    prefix = "Value error, "
    if msg.startswith(prefix):
        return msg[len(prefix):]
    return msg


# PUBLIC_INTERFACE
def field_errors(errors: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Collapse a pydantic/FastAPI error list into ``{field: message}``.

    Only the first message per field is kept, matching how a form shows one
    error under each input. Nested locations are dotted, e.g.
    ``updates.0.title``.
    """
    result: Dict[str, str] = {}
    for error in errors:
        name = _field_name(error.get("loc", ()))
        result.setdefault(name, _message(error))
    return result
