"""
Location resolution for storage endpoint responses.

A storage endpoint signals a newly created resource through the Location
header. Absence of the header is a normal outcome meaning "nothing to
register"; it is reported as None and never raised.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional
from urllib.parse import urljoin

LOCATION_HEADER = "location"


def first_header(headers: Optional[Mapping[str, Any]], name: str) -> Optional[str]:
    """Return the first value of a header, matching its name case-insensitively."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key is not None and key.lower() == wanted:
            if isinstance(value, (list, tuple)):
                return str(value[0]) if value else None
            return value
    return None


def resolve_location(response: Any, request_url: str) -> Optional[str]:
    """
    Extract the Location header from a response and make it absolute.

    Args:
        response: Any object exposing a ``headers`` mapping (e.g. requests.Response)
        request_url: URL the request was sent to; base for relative references

    Returns:
        Absolute URI of the created resource, or None if no location was returned
    """
    raw = first_header(getattr(response, "headers", None), LOCATION_HEADER)
    if raw is None:
        return None

    raw = raw.strip()
    if not raw:
        return None

    # urljoin leaves absolute references untouched
    return urljoin(request_url, raw)
