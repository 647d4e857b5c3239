"""Query normalization for incoming proxy requests.

Raw query values arrive either as a single string or, when a parameter is
repeated, as a list of strings. ``read_query`` builds that mapping once per
request and every reader below collapses a value to a single scalar before
looking at it, so handlers never deal with the list shape themselves.
"""

import re
from typing import Dict, List, Optional, Sequence, Union
from urllib.parse import parse_qs, urlsplit

import azure.functions as func

QueryValue = Union[str, List[str]]

MAX_SAFE_INTEGER = 2 ** 53 - 1

_LEADING_INT = re.compile(r"^[+-]?[0-9]+")


def read_query(req: func.HttpRequest) -> Dict[str, QueryValue]:
    values: Dict[str, QueryValue] = {}
    qs = urlsplit(req.url).query if req.url else ""
    for key, items in parse_qs(qs, keep_blank_values=True).items():
        values[key] = items[0] if len(items) == 1 else items
    # The host's own parsed params only fill gaps; they keep one value per key.
    for key, value in (req.params or {}).items():
        values.setdefault(key, value)
    for key, value in (req.route_params or {}).items():
        if value is not None:
            values[key] = value
    return values


def get_single_query_value(value: Optional[QueryValue]) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def to_positive_integer(
    value: Optional[QueryValue],
    fallback: int,
    min_value: int = 1,
    max_value: int = MAX_SAFE_INTEGER,
) -> int:
    """Parse a leading base-10 integer and clamp it into ``[min_value, max_value]``.

    Missing, blank and non-numeric input yields ``fallback`` untouched.
    """
    single = get_single_query_value(value)
    if not isinstance(single, str) or not single.strip():
        return fallback
    match = _LEADING_INT.match(single.strip())
    if match is None:
        return fallback
    parsed = int(match.group(0))
    return min(max(parsed, min_value), max_value)


def read_allowed_string(value: Optional[QueryValue], allowed_values: Sequence[str]) -> Optional[str]:
    single = get_single_query_value(value)
    if not single or not isinstance(single, str):
        return None
    if single in allowed_values:
        return single
    return None


def read_text(value: Optional[QueryValue]) -> Optional[str]:
    single = get_single_query_value(value)
    if not isinstance(single, str):
        return None
    trimmed = single.strip()
    return trimmed or None


def read_flag(value: Optional[QueryValue], default: bool) -> bool:
    single = read_text(value)
    if single is None:
        return default
    lowered = single.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    return default
