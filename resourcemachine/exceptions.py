"""
Custom exceptions for the resource framework.
"""

from http import HTTPStatus
from typing import Optional


class ResourceMachineError(Exception):
    """Base exception for resource framework errors."""

    pass


class ResourceDefinitionError(ResourceMachineError):
    """Raised at startup when a resource class cannot be turned into routes."""

    pass


class AmbiguousInterfaceAnnotation(ResourceDefinitionError):
    """Raised in strict mode when sibling interfaces disagree on an annotation."""

    def __init__(self, method_name: str, first, second):
        self.method_name = method_name
        self.first = first
        self.second = second
        super().__init__(
            f"Interfaces disagree on annotation for '{method_name}': "
            f"{first!r} vs {second!r}"
        )


class DispatchError(ResourceMachineError):
    """Base class for errors that abort the dispatch of a single request.

    Each subclass carries the HTTP status code the default error reporter
    answers with.
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class RouteNotFound(DispatchError):
    """Raised when no route matches the request path."""

    status_code = HTTPStatus.NOT_FOUND


class MethodNotAllowed(DispatchError):
    """Raised when the path matches but no route exists for the verb."""

    status_code = HTTPStatus.METHOD_NOT_ALLOWED

    def __init__(self, message: str, allowed=()):
        self.allowed = tuple(allowed)
        super().__init__(message)


class ResolutionError(DispatchError):
    """Raised when the resource-instance provider cannot supply an instance."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class ParameterBindingError(DispatchError):
    """Raised when a parameter value cannot be extracted or converted."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, parameter: Optional[str] = None, cause: Optional[BaseException] = None):
        self.parameter = parameter
        super().__init__(message, cause)


class UnsupportedMediaType(ParameterBindingError):
    """Raised when the request entity's media type is not consumed by the method."""

    status_code = HTTPStatus.UNSUPPORTED_MEDIA_TYPE


class ReadError(ResourceMachineError):
    """Raised by content readers when a request body cannot be deserialized."""

    def __init__(self, message="Failed to read request body", original_exception=None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(self.message)


class InvocationError(DispatchError):
    """Wraps an exception raised by the resource method itself."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class NotAcceptable(DispatchError):
    """Raised when no renderer can produce a media type the client accepts."""

    status_code = HTTPStatus.NOT_ACCEPTABLE
