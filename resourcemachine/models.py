"""
Core data models for the resource framework.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from http.cookies import CookieError, SimpleCookie
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

# Set up logger for this module
logger = logging.getLogger(__name__)

BodySource = Callable[[], Awaitable[bytes]]


class HTTPMethod(Enum):
    """Enumeration of supported HTTP methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class MultiValueHeaders:
    """
    Multi-value, case-insensitive headers container.

    HTTP headers are case-insensitive per RFC 7230, and the same header can appear
    multiple times. Header parameters of resource methods are looked up by name
    through this container, so ``@HeaderParam("x-token")`` and
    ``@HeaderParam("X-Token")`` bind the same value.

    Example::

        headers = MultiValueHeaders()
        headers.add('Accept', 'text/plain')
        headers.add('Accept', 'application/json')
        headers.get('accept')      # Returns 'text/plain' (first value)
        headers.get_all('accept')  # Returns ['text/plain', 'application/json']
    """

    def __init__(self, data=None):
        # Internal storage: Dict[lowercase_name, List[Tuple[original_name, value]]]
        self._headers: Dict[str, List[Tuple[str, str]]] = {}

        if data is not None:
            if isinstance(data, MultiValueHeaders):
                self._headers = {k: list(v) for k, v in data._headers.items()}
            elif isinstance(data, dict):
                for key, value in data.items():
                    if isinstance(value, list):
                        for v in value:
                            self.add(key, v)
                    else:
                        self.add(key, value)
            elif isinstance(data, (list, tuple)):
                for key, value in data:
                    self.add(key, value)

    def add(self, name: str, value: str) -> None:
        """Add a header value, allowing multiple values for the same name."""
        self._headers.setdefault(name.lower(), []).append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the first value for a header name."""
        if not isinstance(name, str):
            return default
        values = self._headers.get(name.lower())
        if values:
            return values[0][1]
        return default

    def get_all(self, name: str) -> List[str]:
        """Get all values for a header name (empty list if not found)."""
        return [value for _, value in self._headers.get(name.lower(), [])]

    def set(self, name: str, value: str) -> None:
        """Set a header to a single value, replacing any existing values."""
        self._headers[name.lower()] = [(name, value)]

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name.lower() in self._headers

    def __iter__(self):
        """Iterate over header names (using original casing of first occurrence)."""
        for values in self._headers.values():
            if values:
                yield values[0][0]

    def __len__(self) -> int:
        return len(self._headers)

    def items(self):
        """Return (name, first_value) pairs."""
        return [(values[0][0], values[0][1]) for values in self._headers.values() if values]

    def items_all(self):
        """Return all (name, value) pairs including duplicates."""
        result = []
        for values in self._headers.values():
            result.extend(values)
        return result

    def to_dict(self) -> Dict[str, str]:
        """Convert to a simple dict with the first value for each header."""
        return {values[0][0]: values[0][1] for values in self._headers.values() if values}

    def __eq__(self, other) -> bool:
        if isinstance(other, MultiValueHeaders):
            return self._headers == other._headers
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"MultiValueHeaders({self.to_dict()!r})"


@dataclass
class Request:
    """Represents an HTTP request.

    ``body`` is either the raw entity (``bytes`` or ``str``) or an async
    callable that produces it. The latter lets a network adapter hand the
    request over before the entity has arrived; the body is awaited the first
    time ``read_body()`` is called and never again.
    """

    method: HTTPMethod
    path: str
    headers: Union[MultiValueHeaders, Dict[str, str]] = field(default_factory=MultiValueHeaders)
    body: Optional[Union[bytes, str, BodySource]] = None
    query_params: Optional[Dict[str, str]] = None
    path_params: Optional[Dict[str, str]] = None
    _body_bytes: Optional[bytes] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.headers, MultiValueHeaders):
            self.headers = MultiValueHeaders(self.headers)

    def get_accept_header(self) -> str:
        """Get the Accept header, defaulting to */* if not present."""
        return self.headers.get("Accept") or "*/*"

    def get_content_type(self) -> Optional[str]:
        """Get the Content-Type header."""
        return self.headers.get("Content-Type")

    @property
    def cookies(self) -> Dict[str, str]:
        """Cookies sent with the request, parsed from the Cookie header."""
        jar: SimpleCookie = SimpleCookie()
        for header in self.headers.get_all("Cookie"):
            try:
                jar.load(header)
            except CookieError:
                logger.warning(f"Ignoring malformed Cookie header: {header!r}")
        return {name: morsel.value for name, morsel in jar.items()}

    async def read_body(self) -> bytes:
        """Return the request entity as bytes, awaiting it on first use."""
        if self._body_bytes is not None:
            return self._body_bytes

        body = self.body
        if body is None:
            data = b""
        elif isinstance(body, bytes):
            data = body
        elif isinstance(body, str):
            data = body.encode("utf-8")
        else:
            data = await body()
        self._body_bytes = data
        return data

    def discard_body(self) -> None:
        """Drop the buffered entity so it does not outlive the request."""
        self._body_bytes = None
        self.body = None


@dataclass
class Response:
    """Represents an HTTP response."""

    status_code: int
    body: Optional[Union[str, bytes]] = None
    headers: Optional[Union[MultiValueHeaders, Dict[str, str]]] = None
    content_type: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.headers, MultiValueHeaders):
            self.headers = MultiValueHeaders(self.headers or {})

        if self.content_type:
            self.headers["Content-Type"] = self.content_type

        # Do not include Content-Length for 204 responses
        if self.status_code != 204:
            if self.body is not None:
                body_bytes = self.body.encode('utf-8') if isinstance(self.body, str) else self.body
                content_length = len(body_bytes)
            else:
                content_length = 0
            self.headers["Content-Length"] = str(content_length)

    def body_bytes(self) -> bytes:
        """Return the body encoded for the wire."""
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")

    def __repr__(self) -> str:
        return f"Response(status_code={self.status_code!r}, content_type={self.content_type!r})"
