"""
The error channel: turns dispatch failures into responses.
"""

import inspect
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, List, Optional, Tuple, Union

from .concurrency import call_maybe_async
from .content_renderers import JSONRenderer
from .error_models import ErrorResponse
from .exceptions import DispatchError, MethodNotAllowed
from .models import Request, Response

logger = logging.getLogger(__name__)

ErrorKey = Union[int, type]


@dataclass(frozen=True)
class ErrorHandler:
    """A custom error handler and the errors it answers for.

    Keys are exception classes or HTTP status codes. A handler without keys
    handles every error.
    """

    handler: Callable
    keys: Tuple[ErrorKey, ...] = ()

    @property
    def is_default(self) -> bool:
        return not self.keys

    def handles_type(self, error: BaseException) -> bool:
        return any(inspect.isclass(k) and isinstance(error, k) for k in self.keys)

    def handles_status(self, status_code: int) -> bool:
        return any(not inspect.isclass(k) and k == status_code for k in self.keys)


def status_of(error: BaseException) -> int:
    return int(getattr(error, "status_code", HTTPStatus.INTERNAL_SERVER_ERROR))


class ErrorReporter:
    """Single seam every per-request failure goes through.

    Custom handlers are called as ``handler(request, error)`` and may return
    a ``Response``, a string, or any JSON-serializable value. Exception-type
    handlers are preferred over status-code handlers, which are preferred over
    default handlers. A handler that fails itself falls back to the default
    ``ErrorResponse`` body.
    """

    def __init__(self, handlers: Optional[List[ErrorHandler]] = None):
        self._handlers: List[ErrorHandler] = list(handlers or [])
        self._json = JSONRenderer()

    def add_handler(self, handler: Callable, *keys: ErrorKey) -> None:
        self._handlers.append(ErrorHandler(handler, tuple(keys)))

    def find_handler(self, error: BaseException) -> Optional[ErrorHandler]:
        status_code = status_of(error)
        for matches in (
            lambda h: h.handles_type(error),
            lambda h: h.handles_status(status_code),
            lambda h: h.is_default,
        ):
            for handler in self._handlers:
                if matches(handler):
                    return handler
        return None

    async def report_error(self, request: Request, error: BaseException) -> Response:
        handler = self.find_handler(error)
        if handler is not None:
            try:
                result = await call_maybe_async(handler.handler, request, error)
                return self._to_response(result, request, error)
            except Exception as e:
                logger.error(
                    f"Error handler {getattr(handler.handler, '__name__', handler.handler)!r} failed "
                    f"for {type(error).__name__}: {e}",
                    exc_info=True,
                )
        return self.default_response(error)

    def default_response(self, error: BaseException) -> Response:
        status_code = status_of(error)
        if isinstance(error, DispatchError):
            body = ErrorResponse.from_error(error)
        else:
            body = ErrorResponse(error=HTTPStatus(status_code).phrase)
        return Response(
            status_code,
            body.model_dump_json(),
            headers=self._error_headers(error),
            content_type="application/json",
        )

    def _to_response(self, result: Any, request: Request, error: BaseException) -> Response:
        if isinstance(result, Response):
            return result
        if result is None:
            return self.default_response(error)
        if isinstance(result, (str, bytes)):
            return Response(status_of(error), result, headers=self._error_headers(error),
                            content_type="text/plain")
        return Response(
            status_of(error),
            self._json.render(result, request),
            headers=self._error_headers(error),
            content_type="application/json",
        )

    def _error_headers(self, error: BaseException):
        if isinstance(error, MethodNotAllowed) and error.allowed:
            return {"Allow": ", ".join(error.allowed)}
        return None
