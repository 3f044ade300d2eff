"""Utility functions for fieldforge"""

import re
import uuid
from pathlib import Path

from .consts import FIELD_ID_PREFIX, IDENTIFIER_PATTERN, PROVISIONAL_ID_PREFIX

_IDENTIFIER_RE = re.compile(IDENTIFIER_PATTERN)


def canonicalify(p: Path | str) -> Path:
    return Path(p).expanduser().resolve()


def ensure_path(p: Path | str) -> Path:
    path = canonicalify(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_identifier(value) -> bool:
    """Check whether ``value`` is a valid field key or type code.

    Examples:
        >>> is_identifier("authType")
        True
        >>> is_identifier("1st")
        False
        >>> is_identifier("")
        False
    """
    return isinstance(value, str) and bool(_IDENTIFIER_RE.fullmatch(value))


def new_provisional_id() -> str:
    return f"{PROVISIONAL_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def new_field_id() -> str:
    return f"{FIELD_ID_PREFIX}{uuid.uuid4().hex}"


def is_provisional_id(field_id: str | None) -> bool:
    return bool(field_id) and field_id.startswith(PROVISIONAL_ID_PREFIX)


def flatten_validation_error(e, prefix: str = "") -> list[str]:
    """Turn a pydantic ``ValidationError`` into ``"loc: msg"`` strings."""
    messages = []
    for err in e.errors():
        loc = ".".join(str(part) for part in err["loc"])
        if prefix:
            loc = f"{prefix}.{loc}" if loc else prefix
        msg = err["msg"]
        messages.append(f"{loc}: {msg}" if loc else msg)
    return messages
