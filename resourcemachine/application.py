"""
Resource application: registration, route-table construction and dispatch.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from .annotations import ApplicationPath
from .binding import ParameterBinder
from .concurrency import call_maybe_async
from .config import ApplicationConfig
from .content_readers import ContentReaders
from .content_renderers import ContentRenderer, ContentRenderers
from .dispatcher import RequestDispatcher, Route
from .error_reporter import ErrorReporter
from .exceptions import MethodNotAllowed, ResourceDefinitionError, RouteNotFound
from .introspection import ClassResourceType, ResourceType
from .models import Request, Response
from .providers import ProviderScope, RegistryProvider, ResourceProvider
from .resolver import AnnotationResolver, ResourceMethodResolver
from .router import Router

logger = logging.getLogger(__name__)


def _application_path_value(annotations) -> Optional[str]:
    for annotation in annotations:
        if isinstance(annotation, ApplicationPath):
            return annotation.value
    return None


class ResourceApplication:
    """An application serving annotated resource classes.

    Example::

        app = ResourceApplication(application_path="api")

        @app.resource
        @Path("frob")
        class FrobResource:
            @GET
            @Path("{id}")
            def get(self, id: Annotated[int, PathParam("id")]):
                return {"id": id}

        app.startup_sync()
        app.execute(Request(method=HTTPMethod.GET, path="/api/frob/1"))

    Resources are registered before startup. ``startup()`` resolves every
    resource method, computes its binding plan and builds the route table in
    one pass; if anything is wrong with any resource, startup fails and no
    route is published.
    """

    def __init__(self,
                 application_path: Optional[str] = None,
                 provider: Optional[ResourceProvider] = None,
                 config: Optional[ApplicationConfig] = None,
                 strict_interfaces: Optional[bool] = None,
                 default_produces: Optional[str] = None):
        if config is None:
            config = ApplicationConfig.load(
                application_path=application_path,
                strict_interfaces=strict_interfaces,
                default_produces=default_produces,
            )
        self.config = config
        self.provider = provider if provider is not None else RegistryProvider()
        self.readers = ContentReaders()
        self.renderers = ContentRenderers()
        self.error_reporter = ErrorReporter()

        self._resource_types: List[ResourceType] = []
        self._startup_handlers: List[Callable] = []
        self._shutdown_handlers: List[Callable] = []

        self._routes: Tuple[Route, ...] = ()
        self._router: Optional[Router] = None
        self._dispatcher: Optional[RequestDispatcher] = None

    @classmethod
    def from_application(cls, application_class: type, **kwargs) -> "ResourceApplication":
        """Build an application from an application class.

        The class may carry ``@ApplicationPath`` and define ``get_classes()``
        and ``get_singletons()``::

            @ApplicationPath("foo")
            class MyApplication:
                def get_classes(self):
                    return {FrobResource}

                def get_singletons(self):
                    return {CounterResource()}
        """
        path = AnnotationResolver().resolve_type(ClassResourceType(application_class), _application_path_value)
        if path is not None:
            kwargs.setdefault("application_path", path)
        app = cls(**kwargs)

        declaration = application_class()
        get_classes = getattr(declaration, "get_classes", None)
        get_singletons = getattr(declaration, "get_singletons", None)
        for resource_class in (get_classes() if get_classes else ()) or ():
            app.add_resource(resource_class)
        for instance in (get_singletons() if get_singletons else ()) or ():
            app.add_singleton(instance)
        return app

    @property
    def started(self) -> bool:
        return self._dispatcher is not None

    @property
    def routes(self) -> Tuple[Route, ...]:
        """The route table. Empty until startup."""
        return self._routes

    def _check_not_started(self):
        if self.started:
            raise RuntimeError("Resources cannot be registered after the application has started")

    def add_resource(self, resource_class: type, scope: ProviderScope = "request",
                     factory: Optional[Callable[[], Any]] = None) -> None:
        """Register a resource class.

        With the default registry provider the class is also registered there,
        unless it already is. Custom providers are expected to know the class.
        """
        self._check_not_started()
        resource_type = ClassResourceType(resource_class)
        if resource_type in self._resource_types:
            logger.debug(f"Resource {resource_type.name} is already registered")
            return
        self._resource_types.append(resource_type)
        if isinstance(self.provider, RegistryProvider) and not self.provider.is_registered(resource_class):
            self.provider.register(resource_class, factory=factory, scope=scope)
        logger.debug(f"Registered resource {resource_type.name}")

    def add_singleton(self, instance: Any) -> None:
        """Register an already constructed resource instance (session scope)."""
        self._check_not_started()
        if not isinstance(self.provider, RegistryProvider):
            raise TypeError("Singletons can only be registered with the default registry provider")
        self.provider.register_instance(instance)
        self.add_resource(type(instance))

    def resource(self, cls: Optional[type] = None, *, scope: ProviderScope = "request",
                 factory: Optional[Callable[[], Any]] = None):
        """Decorator form of ``add_resource``.

        Example::

            @app.resource(scope="session")
            @Path("counter")
            class CounterResource:
                ...
        """
        def decorator(resource_class: type) -> type:
            self.add_resource(resource_class, scope=scope, factory=factory)
            return resource_class

        if cls is None:
            return decorator
        return decorator(cls)

    def reads(self, target_type: Any):
        """Decorator registering a content reader for a type.

        Example::

            @app.reads(Gorp)
            def read_gorp(body: bytes, target_type):
                return Gorp.parse(body)
        """
        return self.readers.register(target_type)

    def add_content_renderer(self, renderer: ContentRenderer) -> None:
        self.renderers.add(renderer)

    def handles_error(self, *keys):
        """Decorator to register a custom error handler.

        Args:
            *keys: Exception classes and/or HTTP status codes this handler
                handles. If empty, this becomes the default handler for all
                errors.

        Example::

            @app.handles_error(ParameterBindingError)
            def bad_parameter(request, error):
                return {"error": error.message, "parameter": error.parameter}

            @app.handles_error(404)
            def not_found(request, error):
                return {"error": "Resource not found"}
        """
        def decorator(func: Callable):
            self.error_reporter.add_handler(func, *keys)
            return func
        return decorator

    def on_startup(self, func: Optional[Callable] = None):
        """Register a handler to run once the route table is built. Sync or async."""
        def decorator(f: Callable) -> Callable:
            self._startup_handlers.append(f)
            return f

        if func is None:
            return decorator
        return decorator(func)

    def on_shutdown(self, func: Optional[Callable] = None):
        """Register a handler to run when the application stops. Sync or async."""
        def decorator(f: Callable) -> Callable:
            self._shutdown_handlers.append(f)
            return f

        if func is None:
            return decorator
        return decorator(func)

    def build_routes(self) -> Tuple[Tuple[Route, ...], Router]:
        """Resolve every registered resource into routes without publishing them."""
        resolver = ResourceMethodResolver(AnnotationResolver(strict=self.config.strict_interfaces))
        binder = ParameterBinder()
        router = Router()
        routes: List[Route] = []

        for resource_type in self._resource_types:
            descriptors = resolver.resolve_all(resource_type, self.config.application_path)
            if not descriptors:
                raise ResourceDefinitionError(f"{resource_type.name} declares no resource methods")

            for descriptor in sorted(descriptors, key=lambda d: (d.path, d.http_method.value)):
                plan = binder.bind(descriptor.method)
                if plan.entity is not None:
                    self.readers.prepare(plan.entity.parameter_type)
                route = Route(descriptor, plan)
                try:
                    router.add_route(route.method, route.path, route)
                except ValueError as e:
                    raise ResourceDefinitionError(f"Cannot register {route}: {e}") from e
                logger.debug(f"Route {route.method.value} {route.path} -> {descriptor}")
                routes.append(route)

        return tuple(routes), router

    async def startup(self):
        """Build the route table, then run startup handlers.

        Called automatically by the ASGI adapter. Raises if any resource is
        invalid or any startup handler fails.
        """
        if self.started:
            return

        routes, router = self.build_routes()
        self._routes = routes
        self._router = router
        self._dispatcher = RequestDispatcher(
            provider=self.provider,
            readers=self.readers,
            renderers=self.renderers,
            error_reporter=self.error_reporter,
            default_produces=self.config.default_media_type,
        )
        logger.info(
            f"Started with {len(routes)} routes from {len(self._resource_types)} resources"
            + (f" under /{self.config.application_path}" if self.config.application_path else "")
        )

        for handler in self._startup_handlers:
            await call_maybe_async(handler)

    async def shutdown(self):
        """Run shutdown handlers and close the provider.

        Logs exceptions from shutdown handlers but does not raise them.
        """
        for handler in self._shutdown_handlers:
            try:
                await call_maybe_async(handler)
            except Exception as e:
                logger.error(f"Error in shutdown handler: {e}", exc_info=True)
        try:
            self.provider.close()
        except Exception as e:
            logger.error(f"Error closing resource provider: {e}", exc_info=True)

    def startup_sync(self):
        """Synchronous wrapper for startup(), using anyio.run()."""
        import anyio
        anyio.run(self.startup)

    def shutdown_sync(self):
        """Synchronous wrapper for shutdown(), using anyio.run()."""
        import anyio
        anyio.run(self.shutdown)

    async def dispatch(self, request: Request) -> Response:
        """Route a request and dispatch it to its resource method."""
        if self._dispatcher is None or self._router is None:
            raise RuntimeError("Application has not been started")

        match = self._router.match_route(request.path, request.method)
        if match is None:
            if self._router.has_path(request.path):
                allowed = [m.value for m in self._router.get_methods_for_path(request.path)]
                error = MethodNotAllowed(
                    f"Method {request.method.value} not allowed for {request.path}", allowed=allowed
                )
            else:
                error = RouteNotFound(f"No resource matches {request.path}")
            logger.debug(f"{request.method.value} {request.path}: {error}")
            return await self.error_reporter.report_error(request, error)

        route, path_params = match
        request.path_params = path_params
        return await self._dispatcher.handle(request, route)

    def execute(self, request: Request) -> Response:
        """Synchronous wrapper for dispatch(), using anyio.run()."""
        import anyio
        return anyio.run(self.dispatch, request)

    def asgi(self):
        """Return an ASGI application serving this application."""
        from .adapters import ASGIAdapter
        return ASGIAdapter(self)
