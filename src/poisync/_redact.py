"""Query-string redaction for debug logs.

The places API takes its key as the ``apiKey`` query parameter, so request
parameters must be masked before they are logged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SECRET_PARAMS: frozenset[str] = frozenset({"apikey", "api_key"})

REDACTED = "<redacted>"


def redact_for_log(params: Mapping[str, Any], *, max_value: int = 200) -> dict[str, str]:
    """Return a loggable copy of the flat query mapping *params*.

    Secret parameters are masked and overly long values are cut to
    *max_value* characters.
    """
    redacted: dict[str, str] = {}
    for key, value in params.items():
        if key.lower() in _SECRET_PARAMS:
            redacted[key] = REDACTED
            continue
        text = str(value)
        redacted[key] = text if len(text) <= max_value else f"{text[:max_value]}...<truncated>"
    return redacted
