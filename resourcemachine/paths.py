"""Path composition for resource routes."""

import re
from typing import Optional

_STRIP = " \t\r\n/"
_REPEATED_SLASHES = re.compile(r"/{2,}")


def trim(segment: Optional[str]) -> str:
    """Strip surrounding whitespace and slashes from a path segment.

    Runs of slashes inside the segment collapse to one.

    Examples:
        trim(" /frob/ ") -> "frob"
        trim("/") -> ""
        trim(None) -> ""
    """
    if not segment:
        return ""
    return _REPEATED_SLASHES.sub("/", segment.strip(_STRIP))


def compose(prefix: Optional[str], segment: Optional[str]) -> str:
    """Join a prefix and a segment with exactly one slash.

    Both inputs are trimmed first. An empty segment returns the prefix and an
    empty prefix returns the segment, so the result never contains a doubled
    slash, a leading slash or a trailing slash.

    Examples:
        compose("foo", "/frob") -> "foo/frob"
        compose("foo/", "") -> "foo"
        compose("", "/frob/") -> "frob"
    """
    prefix = trim(prefix)
    segment = trim(segment)
    if not segment:
        return prefix
    if not prefix:
        return segment
    return prefix + "/" + segment


def to_route_path(path: str) -> str:
    """Convert a composed path to the absolute form the router matches against.

    Examples:
        to_route_path("foo/frob") -> "/foo/frob"
        to_route_path("") -> "/"
    """
    return "/" + trim(path)
