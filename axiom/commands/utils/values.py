import json
import re
from typing import Any

NUMBER_PATTERN = re.compile(r"-?\d+(\.\d+)?", re.ASCII)


def looks_like_json(token: str) -> bool:
    return (token.startswith("{") and token.endswith("}")) or (
        token.startswith("[") and token.endswith("]")
    )


def _reject_constant(name: str):
    raise ValueError(f"Not a JSON value: {name}")


def coerce_value(token: str) -> Any:
    """
    Convert a raw token into a typed value.

    Checked in order: booleans (case-insensitive), numbers, JSON objects or
    arrays, then the token itself. Malformed JSON falls back to the string.
    Integers too long for ``int`` become ``float`` (``inf`` past its range).
    """
    lowered = token.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    match = NUMBER_PATTERN.fullmatch(token)
    if match:
        if match.group(1):
            return float(token)
        try:
            return int(token)
        except ValueError:
            return float(token)

    if looks_like_json(token):
        try:
            # NaN and Infinity are not JSON
            return json.loads(token, parse_constant=_reject_constant)
        except (ValueError, RecursionError):
            return token

    return token
