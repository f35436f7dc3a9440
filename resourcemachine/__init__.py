"""
Annotation-driven resource routing with JAX-RS style inheritance rules.

Resource classes declare their paths, HTTP methods and media types with
decorators. At startup the application walks each class hierarchy (method,
superclasses, then interfaces) to resolve that metadata, builds an immutable
route table, and dispatches requests through a small state machine that
obtains a resource instance, binds parameters and renders the result.
"""

from http import HTTPStatus

from .adapters import ASGIAdapter
from .annotations import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    Annotation,
    ApplicationPath,
    Consumes,
    CookieParam,
    DefaultValue,
    HeaderParam,
    Path,
    PathParam,
    Produces,
    QueryParam,
    http_method,
)
from .application import ResourceApplication
from .binding import BindingPlan, ParameterBinder, ParameterBinding
from .config import ApplicationConfig
from .content_readers import ContentReaders
from .content_renderers import (
    ContentRenderer,
    ContentRenderers,
    HTMLRenderer,
    JSONRenderer,
    PlainTextRenderer,
)
from .descriptors import MediaType, ResourceMethodDescriptor
from .dispatcher import RequestDispatcher, Route
from .error_models import ErrorResponse
from .error_reporter import ErrorReporter
from .exceptions import (
    AmbiguousInterfaceAnnotation,
    DispatchError,
    InvocationError,
    MethodNotAllowed,
    NotAcceptable,
    ParameterBindingError,
    ReadError,
    ResolutionError,
    ResourceDefinitionError,
    ResourceMachineError,
    RouteNotFound,
    UnsupportedMediaType,
)
from .introspection import ClassResourceType, MethodHandle, ResourceType
from .models import HTTPMethod, MultiValueHeaders, Request, Response
from .paths import compose
from .providers import RegistryProvider, RequestScope, ResourceProvider
from .resolver import AnnotationResolver, ResourceMethodResolver
from .router import Router

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "ResourceApplication",
    "ApplicationConfig",
    "ASGIAdapter",
    "Router",
    "Route",
    "Request",
    "Response",
    "HTTPMethod",
    "HTTPStatus",
    "MultiValueHeaders",
    # Annotations
    "Annotation",
    "http_method",
    "Path",
    "ApplicationPath",
    "Produces",
    "Consumes",
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "PATCH",
    "HEAD",
    "OPTIONS",
    "PathParam",
    "QueryParam",
    "HeaderParam",
    "CookieParam",
    "DefaultValue",
    # Resolution
    "compose",
    "ResourceType",
    "ClassResourceType",
    "MethodHandle",
    "AnnotationResolver",
    "ResourceMethodResolver",
    "ResourceMethodDescriptor",
    "MediaType",
    "ParameterBinder",
    "ParameterBinding",
    "BindingPlan",
    # Dispatch
    "RequestDispatcher",
    "ResourceProvider",
    "RegistryProvider",
    "RequestScope",
    "ContentReaders",
    "ContentRenderer",
    "ContentRenderers",
    "JSONRenderer",
    "HTMLRenderer",
    "PlainTextRenderer",
    "ErrorReporter",
    "ErrorResponse",
    # Errors
    "ResourceMachineError",
    "ResourceDefinitionError",
    "AmbiguousInterfaceAnnotation",
    "DispatchError",
    "RouteNotFound",
    "MethodNotAllowed",
    "ResolutionError",
    "ParameterBindingError",
    "UnsupportedMediaType",
    "ReadError",
    "InvocationError",
    "NotAcceptable",
]
