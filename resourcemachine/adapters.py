"""
ASGI adapter for running resource applications on ASGI servers (Uvicorn,
Hypercorn, etc.).

The adapter converts between ASGI messages and the internal Request/Response
models. Dispatch runs as its own task while the adapter keeps reading the
connection: body chunks are buffered for the request, and an
``http.disconnect`` cancels the dispatch. A cancelled dispatch sends nothing.
"""

import asyncio
import contextlib
import json
import logging
import urllib.parse
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List

from .models import HTTPMethod, MultiValueHeaders, Request, Response

if TYPE_CHECKING:
    from .application import ResourceApplication

logger = logging.getLogger(__name__)

Receive = Callable[[], Awaitable[Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Awaitable[None]]


class RequestBody:
    """Request entity assembled from ``http.request`` messages."""

    def __init__(self):
        self._chunks: List[bytes] = []
        self._complete = asyncio.Event()
        self.disconnected = False

    def feed(self, chunk: bytes, more_body: bool) -> None:
        if chunk:
            self._chunks.append(chunk)
        if not more_body:
            self._complete.set()

    async def read(self) -> bytes:
        """Wait for the last chunk and return the whole entity."""
        await self._complete.wait()
        return b"".join(self._chunks)


class ASGIAdapter:
    """
    ASGI 3.0 adapter for resource applications.

    Example::

        app = ResourceApplication()
        asgi_app = ASGIAdapter(app)

        # uvicorn module:asgi_app
    """

    def __init__(self, app: "ResourceApplication"):
        self.app = app

    async def __call__(self, scope: Dict[str, Any], receive: Receive, send: Send):
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            await send({
                "type": "http.response.start",
                "status": 404,
                "headers": [[b"content-type", b"text/plain"]],
            })
            await send({
                "type": "http.response.body",
                "body": b"Not Found - Only HTTP protocol is supported",
            })
            return

        try:
            if not self.app.started:
                # Servers running without lifespan support
                await self.app.startup()

            body = RequestBody()
            request = self._to_request(scope, body)
        except Exception as e:
            logger.error(f"Could not start request: {e}", exc_info=True)
            await self._send_response(self._internal_error(), send)
            return

        dispatch = asyncio.ensure_future(self.app.dispatch(request))
        receiver = asyncio.ensure_future(self._receive(receive, body, dispatch))
        try:
            response = await dispatch
        except asyncio.CancelledError:
            if body.disconnected:
                logger.info(f"Client disconnected during {request.method.value} {request.path}")
                return
            raise
        except Exception as e:
            logger.error(f"Unhandled exception processing {request.method.value} {request.path}: {e}",
                         exc_info=True)
            response = self._internal_error()
        finally:
            await self._stop_receiver(receiver)

        await self._send_response(response, send)

    async def _stop_receiver(self, receiver: "asyncio.Future") -> None:
        receiver.cancel()
        try:
            with contextlib.suppress(asyncio.CancelledError):
                await receiver
        except Exception as e:
            logger.error(f"Error reading from the client: {e}", exc_info=True)

    async def _receive(self, receive: Receive, body: RequestBody, dispatch: "asyncio.Future") -> None:
        """Buffer body chunks and cancel the dispatch when the client goes away."""
        while True:
            message = await receive()
            if message["type"] == "http.request":
                body.feed(message.get("body", b""), message.get("more_body", False))
            elif message["type"] == "http.disconnect":
                body.disconnected = True
                dispatch.cancel()
                return

    async def _handle_lifespan(self, receive: Receive, send: Send):
        """
        Handle ASGI lifespan protocol for startup and shutdown.

        Startup builds the route table, so a broken resource definition is
        reported to the server as ``lifespan.startup.failed``.
        """
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.app.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    logger.error(f"Error during startup: {e}", exc_info=True)
                    await send({
                        "type": "lifespan.startup.failed",
                        "message": str(e)
                    })
                    # Re-raise so server knows startup failed
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.app.shutdown()
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    logger.error(f"Error during shutdown: {e}", exc_info=True)
                    await send({
                        "type": "lifespan.shutdown.failed",
                        "message": str(e)
                    })
                return

    def _to_request(self, scope: Dict[str, Any], body: RequestBody) -> Request:
        """Convert an ASGI scope to a Request whose body arrives through ``body``."""
        method = HTTPMethod(scope["method"])
        path = scope["path"]

        query_string = scope.get("query_string", b"").decode("utf-8")
        query_params = {}
        if query_string:
            # Takes the first value for duplicate keys
            query_params = dict(urllib.parse.parse_qsl(query_string))

        # ASGI uses lowercase names and bytes
        headers = MultiValueHeaders()
        for header_name, header_value in scope.get("headers", []):
            headers.add(header_name.decode("latin-1").lower(), header_value.decode("latin-1"))

        return Request(
            method=method,
            path=path,
            headers=headers,
            query_params=query_params,
            body=body.read,
        )

    async def _send_response(self, response: Response, send: Send):
        headers = [
            [name.encode("latin-1"), str(value).encode("latin-1")]
            for name, value in response.headers.items_all()
        ]
        await send({
            "type": "http.response.start",
            "status": int(response.status_code),
            "headers": headers,
        })
        await send({
            "type": "http.response.body",
            "body": response.body_bytes(),
        })

    def _internal_error(self) -> Response:
        return Response(
            500,
            json.dumps({"error": "Internal Server Error"}),
            content_type="application/json",
        )
