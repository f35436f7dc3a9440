"""
Declarative metadata for resource classes, resource methods and their parameters.

Class and method metadata are attached with decorators::

    @Path("frob")
    class FrobResource:

        @GET
        @Path("{id}")
        @Produces("application/json")
        def get(self, id: Annotated[int, PathParam("id")]):
            ...

Decorators record annotation objects on the decorated object's own
``__dict__``. They are never inherited through normal attribute lookup; the
resolver walks the class hierarchy explicitly instead.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

ANNOTATIONS_ATTRIBUTE = "__resource_annotations__"
HTTP_METHOD_ATTRIBUTE = "__http_method__"


def _unwrap(target: Any) -> Any:
    """Return the function underneath staticmethod/classmethod wrappers."""
    if isinstance(target, (staticmethod, classmethod)):
        return target.__func__
    return target


def annotations_of(target: Any) -> Tuple["Annotation", ...]:
    """Return the annotations declared directly on a class or function.

    Annotations declared on a superclass, or on the method a function
    overrides, are not included.
    """
    try:
        own = vars(_unwrap(target))
    except TypeError:
        return ()
    return own.get(ANNOTATIONS_ATTRIBUTE, ())


class Annotation:
    """Base class for decorators that attach metadata to classes and methods."""

    def __call__(self, target):
        func = _unwrap(target)
        # Decorators run bottom-up; prepend so source order is preserved
        setattr(func, ANNOTATIONS_ATTRIBUTE, (self,) + annotations_of(func))
        return target


def http_method(verb: str):
    """Meta-annotation marking an annotation class as an HTTP verb.

    Example::

        @http_method("PATCH")
        class Patch(Annotation):
            pass

        PATCH = Patch()
    """
    def decorator(cls):
        setattr(cls, HTTP_METHOD_ATTRIBUTE, verb.upper())
        return cls
    return decorator


def http_method_of(annotation: Any) -> Optional[str]:
    """Return the verb an annotation stands for, or None if it is not a verb annotation."""
    return vars(type(annotation)).get(HTTP_METHOD_ATTRIBUTE)


@dataclass(frozen=True)
class Path(Annotation):
    """Relative URI template of a resource class or resource method."""

    value: str


@dataclass(frozen=True)
class ApplicationPath(Annotation):
    """Base URI of every resource registered through an application class."""

    value: str


@dataclass(frozen=True, init=False)
class Produces(Annotation):
    """Media types a resource method can produce."""

    value: Tuple[str, ...]

    def __init__(self, *media_types: str):
        object.__setattr__(self, "value", tuple(media_types))


@dataclass(frozen=True, init=False)
class Consumes(Annotation):
    """Media types a resource method can consume."""

    value: Tuple[str, ...]

    def __init__(self, *media_types: str):
        object.__setattr__(self, "value", tuple(media_types))


@http_method("GET")
class Get(Annotation):
    def __repr__(self):
        return "GET"


@http_method("POST")
class Post(Annotation):
    def __repr__(self):
        return "POST"


@http_method("PUT")
class Put(Annotation):
    def __repr__(self):
        return "PUT"


@http_method("DELETE")
class Delete(Annotation):
    def __repr__(self):
        return "DELETE"


@http_method("PATCH")
class Patch(Annotation):
    def __repr__(self):
        return "PATCH"


@http_method("HEAD")
class Head(Annotation):
    def __repr__(self):
        return "HEAD"


@http_method("OPTIONS")
class Options(Annotation):
    def __repr__(self):
        return "OPTIONS"


GET = Get()
POST = Post()
PUT = Put()
DELETE = Delete()
PATCH = Patch()
HEAD = Head()
OPTIONS = Options()


class ParamSource(Enum):
    """Request location a named parameter is extracted from."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class ParameterAnnotation:
    """Base class for ``typing.Annotated`` metadata on resource method parameters."""

    pass


@dataclass(frozen=True)
class PathParam(ParameterAnnotation):
    """Bind a parameter to a path template variable."""

    name: str
    source = ParamSource.PATH


@dataclass(frozen=True)
class QueryParam(ParameterAnnotation):
    """Bind a parameter to a query string parameter."""

    name: str
    source = ParamSource.QUERY


@dataclass(frozen=True)
class HeaderParam(ParameterAnnotation):
    """Bind a parameter to a request header (case-insensitive)."""

    name: str
    source = ParamSource.HEADER


@dataclass(frozen=True)
class CookieParam(ParameterAnnotation):
    """Bind a parameter to a cookie."""

    name: str
    source = ParamSource.COOKIE


@dataclass(frozen=True)
class DefaultValue(ParameterAnnotation):
    """Raw value used when a named parameter is absent from the request."""

    value: str


BINDING_ANNOTATIONS = (PathParam, QueryParam, HeaderParam, CookieParam)
