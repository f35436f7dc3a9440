"""
Resource-instance providers.

The dispatcher never constructs resource instances itself. It asks a
``ResourceProvider`` for one per request, inside a ``RequestScope`` that
hands request-scoped instances back to the provider once the response has
been produced (or the request was aborted).

``RegistryProvider`` is a small provider backed by factories, with two
scopes:

- ``"request"``: a fresh instance for every request, released afterwards.
- ``"session"``: one instance for the application's lifetime, created on
  first use and disposed at shutdown.
"""

import asyncio
import inspect
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from .concurrency import call_and_reclaim
from .exceptions import ResolutionError
from .introspection import ResourceType
from .models import Request

logger = logging.getLogger(__name__)

ProviderScope = Literal["request", "session"]


def _python_class(resource_type: Union[ResourceType, type]) -> type:
    if isinstance(resource_type, ResourceType):
        return resource_type.python_class
    return resource_type


class ResourceProvider(ABC):
    """Supplies resource instances to the dispatcher.

    ``get`` may be a plain method or a coroutine function; plain methods run
    on the event loop's executor. ``release`` and ``close`` are optional.
    """

    @abstractmethod
    def get(self, resource_type: ResourceType) -> Any:
        """Return an instance of ``resource_type``."""

    def release(self, instance: Any) -> None:
        """Called once the request that obtained ``instance`` is finished."""
        pass

    def close(self) -> None:
        """Called at application shutdown."""
        pass


@dataclass
class Registration:
    factory: Callable[[], Any]
    scope: ProviderScope = "request"
    dispose: Optional[Callable[[Any], Any]] = None


class RegistryProvider(ResourceProvider):
    """Provider backed by per-class factories.

    Classes registered without a factory are constructed with no arguments.
    """

    def __init__(self):
        self._registrations: Dict[type, Registration] = {}
        self._session_instances: Dict[type, Any] = {}
        self._lock = threading.Lock()

    def register(self, cls: type, factory: Optional[Callable[[], Any]] = None,
                 scope: ProviderScope = "request", dispose: Optional[Callable[[Any], Any]] = None) -> None:
        if scope not in ("request", "session"):
            raise ValueError(f"Unknown provider scope: {scope!r}")
        self._registrations[cls] = Registration(factory or cls, scope, dispose)
        logger.debug(f"Registered {cls.__qualname__} with scope '{scope}'")

    def register_instance(self, instance: Any, dispose: Optional[Callable[[Any], Any]] = None) -> None:
        """Register a ready-made instance as a session-scoped singleton."""
        cls = type(instance)
        with self._lock:
            self._registrations[cls] = Registration(lambda: instance, "session", dispose)
            self._session_instances[cls] = instance

    def is_registered(self, cls: type) -> bool:
        return cls in self._registrations

    def get(self, resource_type: Union[ResourceType, type]) -> Any:
        cls = _python_class(resource_type)
        registration = self._registrations.get(cls)
        if registration is None:
            raise LookupError(f"No provider registered for {cls.__qualname__}")

        if registration.scope == "request":
            return registration.factory()

        with self._lock:
            if cls not in self._session_instances:
                logger.debug(f"Creating session instance of {cls.__qualname__}")
                self._session_instances[cls] = registration.factory()
            return self._session_instances[cls]

    def release(self, instance: Any) -> None:
        registration = self._registrations.get(type(instance))
        if registration is None or registration.scope != "request":
            return
        if registration.dispose is not None:
            registration.dispose(instance)

    def close(self) -> None:
        with self._lock:
            instances = list(self._session_instances.items())
            self._session_instances.clear()
        for cls, instance in instances:
            dispose = self._registrations[cls].dispose
            if dispose is None:
                continue
            try:
                dispose(instance)
            except Exception as e:
                logger.error(f"Error disposing {cls.__qualname__}: {e}", exc_info=True)


class RequestScope:
    """The scoped session of one dispatch.

    Use as an async context manager. On exit, whether the dispatch succeeded,
    failed or was cancelled, every instance obtained through the scope is
    released and the request body buffer is dropped.
    """

    def __init__(self, request: Request, provider: ResourceProvider):
        self.request = request
        self.provider = provider
        self._instances: List[Any] = []
        self._closed = False

    async def __aenter__(self) -> "RequestScope":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        return False

    async def instance_for(self, resource_type: ResourceType) -> Any:
        """Obtain a resource instance, wrapping provider failures in ResolutionError."""
        if self._closed:
            raise RuntimeError("Request scope is already closed")
        try:
            instance = await call_and_reclaim(self.provider.get, self._release_late, resource_type)
        except Exception as e:
            raise ResolutionError(
                f"Could not obtain an instance of {resource_type.name}", cause=e
            ) from e
        if instance is None:
            raise ResolutionError(f"Provider returned no instance of {resource_type.name}")
        self._instances.append(instance)
        return instance

    def _release_late(self, instance: Any):
        logger.debug(f"Releasing {type(instance).__qualname__} obtained after the request was cancelled")
        return self.provider.release(instance)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for instance in reversed(self._instances):
            try:
                result = self.provider.release(instance)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error releasing {type(instance).__qualname__}: {e}", exc_info=True)
        self._instances.clear()
        self.request.discard_body()
