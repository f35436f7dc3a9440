"""
DSL (Domain Specific Language) for RESTful test actions.

This is the second layer of the 4-layer testing architecture:
1. Test Layer (actual test methods)
2. DSL Layer (this file) - describes what we want to do in business terms
3. Driver Layer - knows how to interact with the system
4. System Under Test (resourcemachine library)
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from resourcemachine import MultiValueHeaders


@dataclass
class HttpRequest:
    """Represents an HTTP request in business terms."""
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes, Dict[str, Any], List[Any]]] = None

    def with_json_body(self, data: Union[Dict[str, Any], List[Any]]) -> 'HttpRequest':
        """Add JSON body to the request."""
        self.body = data
        self.headers["Content-Type"] = "application/json"
        return self

    def with_text_body(self, text: str, content_type: str = "text/plain") -> 'HttpRequest':
        """Add text body to the request."""
        self.body = text
        self.headers["Content-Type"] = content_type
        return self

    def with_header(self, name: str, value: str) -> 'HttpRequest':
        """Add a header to the request."""
        self.headers[name] = value
        return self

    def with_cookie(self, name: str, value: str) -> 'HttpRequest':
        """Add a cookie to the request."""
        existing = self.headers.get("Cookie")
        cookie = f"{name}={value}"
        self.headers["Cookie"] = f"{existing}; {cookie}" if existing else cookie
        return self

    def with_query(self, **params: str) -> 'HttpRequest':
        """Add query parameters to the request."""
        self.query_params.update(params)
        return self

    def accepts(self, content_type: str) -> 'HttpRequest':
        """Set the Accept header."""
        self.headers["Accept"] = content_type
        return self

    def body_bytes(self) -> bytes:
        """Encode the body the way a client would put it on the wire."""
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, (dict, list)):
            return json.dumps(self.body).encode("utf-8")
        return str(self.body).encode("utf-8")


@dataclass
class HttpResponse:
    """Represents an HTTP response in business terms."""
    status_code: int
    headers: MultiValueHeaders = field(default_factory=MultiValueHeaders)
    body: bytes = b""

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def get_header(self, name: str) -> Optional[str]:
        """Get header value (case-insensitive)."""
        return self.headers.get(name)

    def get_json_body(self):
        """Get response body as JSON object or list."""
        return json.loads(self.body.decode("utf-8"))

    def get_text_body(self) -> str:
        """Get response body as text."""
        return self.body.decode("utf-8")


class RestApiDsl:
    """
    Domain-Specific Language for REST API testing.

    This provides a high-level, business-focused way to describe REST operations
    without knowing implementation details.
    """

    def __init__(self, driver):
        """Initialize with a driver that knows how to execute requests."""
        self._driver = driver

    # Request builders (fluent interface)
    def get(self, path: str) -> HttpRequest:
        return HttpRequest(method="GET", path=path)

    def post(self, path: str) -> HttpRequest:
        return HttpRequest(method="POST", path=path)

    def put(self, path: str) -> HttpRequest:
        return HttpRequest(method="PUT", path=path)

    def delete(self, path: str) -> HttpRequest:
        return HttpRequest(method="DELETE", path=path)

    # Execution
    def execute(self, request: HttpRequest) -> HttpResponse:
        """Execute a request using the underlying driver."""
        return self._driver.execute(request)

    # Convenience methods for common patterns
    def get_resource(self, path: str) -> HttpResponse:
        """Get a resource as JSON."""
        return self.execute(self.get(path).accepts("application/json"))

    def create_resource(self, path: str, data: Dict[str, Any]) -> HttpResponse:
        """Create a resource with JSON data."""
        return self.execute(self.post(path).with_json_body(data).accepts("application/json"))

    # Assertion helpers
    def expect_successful_retrieval(self, response: HttpResponse) -> Any:
        """Assert successful resource retrieval and return data."""
        assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.body!r}"
        return response.get_json_body()

    def expect_no_content(self, response: HttpResponse):
        assert response.status_code == 204, f"Expected 204, got {response.status_code}: {response.body!r}"
        assert response.body == b""

    def expect_bad_request(self, response: HttpResponse) -> Dict[str, Any]:
        """Assert a parameter binding failure and return the error body."""
        assert response.status_code == 400, f"Expected 400, got {response.status_code}: {response.body!r}"
        return response.get_json_body()

    def expect_not_found(self, response: HttpResponse):
        assert response.status_code == 404, f"Expected 404, got {response.status_code}"

    def expect_method_not_allowed(self, response: HttpResponse) -> List[str]:
        """Assert 405 and return the methods listed in the Allow header."""
        assert response.status_code == 405, f"Expected 405, got {response.status_code}"
        allow = response.get_header("Allow")
        assert allow, "Expected an Allow header"
        return [m.strip() for m in allow.split(",")]

    def expect_not_acceptable(self, response: HttpResponse):
        assert response.status_code == 406, f"Expected 406, got {response.status_code}"

    def expect_unsupported_media_type(self, response: HttpResponse):
        assert response.status_code == 415, f"Expected 415, got {response.status_code}"

    def expect_server_error(self, response: HttpResponse) -> Dict[str, Any]:
        assert response.status_code == 500, f"Expected 500, got {response.status_code}"
        return response.get_json_body()
