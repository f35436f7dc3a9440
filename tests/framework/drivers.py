"""
Driver implementations for different execution environments.

This is the third layer of the 4-layer testing architecture.
Drivers know how to translate DSL requests into actual system calls.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List
from urllib.parse import urlencode

import anyio

from resourcemachine import ASGIAdapter, HTTPMethod, MultiValueHeaders, ResourceApplication
from resourcemachine import Request as ResourceRequest
from .dsl import HttpRequest, HttpResponse


class DriverInterface(ABC):
    """Abstract interface for all drivers."""

    @abstractmethod
    def execute(self, request: HttpRequest) -> HttpResponse:
        """Execute an HTTP request and return the response."""
        pass


class DirectDriver(DriverInterface):
    """
    Driver that executes requests directly against the application.

    This is the most direct way to test the library without any intermediate layers.
    """

    def __init__(self, app: ResourceApplication):
        self.app = app
        if not app.started:
            app.startup_sync()

    def execute(self, request: HttpRequest) -> HttpResponse:
        """Execute request directly through ResourceApplication."""
        response = self.app.execute(self._convert_request(request))
        return HttpResponse(
            status_code=int(response.status_code),
            headers=MultiValueHeaders(response.headers),
            body=response.body_bytes(),
        )

    def _convert_request(self, request: HttpRequest) -> ResourceRequest:
        return ResourceRequest(
            method=HTTPMethod(request.method.upper()),
            path=request.path,
            headers=request.headers.copy(),
            query_params=request.query_params.copy() if request.query_params else None,
            body=request.body_bytes() if request.body is not None else None,
        )


class AsgiDriver(DriverInterface):
    """
    Driver that executes requests through the ASGI adapter, in process.

    Each request is one ASGI ``http`` connection: the whole body is delivered
    in a single ``http.request`` message and the client never disconnects.
    """

    def __init__(self, app: ResourceApplication):
        self.app = app
        self.asgi_app = ASGIAdapter(app)

    def execute(self, request: HttpRequest) -> HttpResponse:
        return anyio.run(self._execute, request)

    async def _execute(self, request: HttpRequest) -> HttpResponse:
        messages: List[Dict[str, Any]] = [
            {"type": "http.request", "body": request.body_bytes(), "more_body": False}
        ]
        sent: List[Dict[str, Any]] = []

        async def receive():
            if messages:
                return messages.pop(0)
            await anyio.sleep_forever()

        async def send(message):
            sent.append(message)

        await self.asgi_app(self._scope(request), receive, send)
        return self._convert_response(sent)

    def _scope(self, request: HttpRequest) -> Dict[str, Any]:
        return {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": request.method.upper(),
            "scheme": "http",
            "path": request.path,
            "query_string": urlencode(request.query_params).encode("utf-8"),
            "headers": [
                [name.lower().encode("latin-1"), value.encode("latin-1")]
                for name, value in request.headers.items()
            ],
        }

    def _convert_response(self, sent: List[Dict[str, Any]]) -> HttpResponse:
        start = next(m for m in sent if m["type"] == "http.response.start")
        body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
        headers = MultiValueHeaders()
        for name, value in start["headers"]:
            headers.add(name.decode("latin-1"), value.decode("latin-1"))
        return HttpResponse(status_code=start["status"], headers=headers, body=body)
