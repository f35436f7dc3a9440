"""
Per-request dispatch of resource methods.

Dispatch is a small webmachine-style state machine::

    Received -> ParamsResolved -> Invoked -> ResponseSent

Each state either returns the next state or a terminal ``Response``. A state
that fails raises a ``DispatchError``; the dispatcher hands it to the error
reporter and nothing further runs, so a method whose parameters could not be
bound is never invoked.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, List, Optional, Union

from .binding import BindingPlan
from .concurrency import call_maybe_async
from .content_readers import ContentReaders
from .content_renderers import ContentRenderers
from .descriptors import MediaType, ResourceMethodDescriptor
from .error_reporter import ErrorReporter
from .exceptions import (
    DispatchError,
    InvocationError,
    NotAcceptable,
    ParameterBindingError,
    ReadError,
    ResolutionError,
    UnsupportedMediaType,
)
from .models import HTTPMethod, Request, Response
from .paths import to_route_path
from .providers import RequestScope, ResourceProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """A resolved resource method together with its binding plan."""

    descriptor: ResourceMethodDescriptor
    plan: BindingPlan

    @property
    def method(self) -> HTTPMethod:
        return self.descriptor.http_method

    @property
    def path(self) -> str:
        return to_route_path(self.descriptor.path)

    def __str__(self) -> str:
        return str(self.descriptor)


@dataclass
class DispatchContext:
    """State shared by the states of one dispatch. Never shared between requests."""

    request: Request
    route: Route
    scope: RequestScope
    readers: ContentReaders
    renderers: ContentRenderers
    default_produces: MediaType
    instance: Any = None
    arguments: List[Any] = field(default_factory=list)
    result: Any = None


class DispatchState(ABC):
    """One step of the dispatch state machine."""

    @abstractmethod
    async def execute(self, ctx: DispatchContext) -> Union["DispatchState", Response]:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


def _request_media_type(request: Request) -> Optional[MediaType]:
    content_type = request.get_content_type()
    if not content_type:
        return None
    try:
        return MediaType.parse(content_type)
    except ValueError as e:
        raise UnsupportedMediaType(f"Malformed Content-Type: {content_type!r}", cause=e) from e


class Received(DispatchState):
    """Check the entity media type, then obtain the resource instance."""

    async def execute(self, ctx: DispatchContext) -> DispatchState:
        descriptor = ctx.route.descriptor
        if ctx.route.plan.entity is not None:
            media_type = _request_media_type(ctx.request)
            if media_type is not None and not descriptor.consumes_media_type(media_type):
                raise UnsupportedMediaType(f"Unsupported Media Type: {media_type}")

        ctx.instance = await ctx.scope.instance_for(descriptor.resource_type)
        return ParamsResolved()


class ParamsResolved(DispatchState):
    """Resolve every argument, in declaration order."""

    async def execute(self, ctx: DispatchContext) -> DispatchState:
        arguments = []
        for binding in ctx.route.plan:
            if binding.is_entity:
                arguments.append(await self._read_entity(ctx, binding))
            else:
                arguments.append(binding.value_from(ctx.request))
        ctx.arguments = arguments
        return Invoked()

    async def _read_entity(self, ctx: DispatchContext, binding) -> Any:
        body = await ctx.request.read_body()
        try:
            return await ctx.readers.read(body, binding.parameter_type, _request_media_type(ctx.request))
        except ReadError as e:
            raise ParameterBindingError(
                e.message, parameter=binding.name, cause=e.original_exception or e
            ) from e


class Invoked(DispatchState):
    """Call the resource method on the instance."""

    async def execute(self, ctx: DispatchContext) -> DispatchState:
        method = ctx.route.descriptor.method
        args, kwargs = ctx.route.plan.arguments(ctx.arguments)
        try:
            ctx.result = await call_maybe_async(method.bind(ctx.instance), *args, **kwargs)
        except Exception as e:
            raise InvocationError(f"{method} raised {type(e).__name__}: {e}", cause=e) from e
        return ResponseSent()


class ResponseSent(DispatchState):
    """Map the return value to a response."""

    async def execute(self, ctx: DispatchContext) -> Response:
        result = ctx.result
        if isinstance(result, Response):
            return result
        if result is None:
            return Response(HTTPStatus.NO_CONTENT)

        media_type, renderer = ctx.renderers.negotiate(
            ctx.route.descriptor.produces, ctx.request.get_accept_header(), ctx.default_produces
        )
        if renderer is not None:
            body = renderer.render(result, ctx.request)
        elif isinstance(result, (str, bytes)):
            body = result
        else:
            raise NotAcceptable(f"No renderer available for {media_type}")
        return Response(HTTPStatus.OK, body, content_type=str(media_type))


class RequestDispatcher:
    """Runs the dispatch state machine for a matched route."""

    def __init__(self, provider: ResourceProvider, readers: ContentReaders, renderers: ContentRenderers,
                 error_reporter: ErrorReporter, default_produces: MediaType):
        self.provider = provider
        self.readers = readers
        self.renderers = renderers
        self.error_reporter = error_reporter
        self.default_produces = default_produces

    async def handle(self, request: Request, route: Route) -> Response:
        async with RequestScope(request, self.provider) as scope:
            ctx = DispatchContext(
                request=request,
                route=route,
                scope=scope,
                readers=self.readers,
                renderers=self.renderers,
                default_produces=self.default_produces,
            )
            try:
                return await self._run(ctx)
            except DispatchError as e:
                self._log_error(request, e)
                return await self.error_reporter.report_error(request, e)

    async def _run(self, ctx: DispatchContext) -> Response:
        logger.debug(f"Dispatching {ctx.request.method.value} {ctx.request.path} to {ctx.route}")
        state: Union[DispatchState, Response] = Received()
        while not isinstance(state, Response):
            state_name = state.name
            logger.debug(f"  → {state_name}")
            try:
                state = await state.execute(ctx)
            except DispatchError:
                raise
            except Exception as e:
                raise DispatchError(f"Internal error in {state_name}: {e}", cause=e) from e
        logger.debug(f"  ✓ {state.status_code}")
        return state

    def _log_error(self, request: Request, error: DispatchError) -> None:
        message = f"{request.method.value} {request.path} failed: {error}"
        if isinstance(error, (ParameterBindingError, NotAcceptable)):
            logger.warning(message)
        elif isinstance(error, (ResolutionError, InvocationError)):
            logger.error(message, exc_info=error.cause or error)
        else:
            logger.error(message, exc_info=True)
