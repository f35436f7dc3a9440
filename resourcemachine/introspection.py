"""
Type introspection used to resolve resource metadata.

``ResourceType`` is the capability the resolver works against: a class-like
entity exposing its methods, its direct superclass, its directly implemented
interfaces and the annotations on its members. ``ClassResourceType``
implements it over ordinary Python classes.

Python classes have no separate notion of interfaces, so the following
mapping is used:

- the superclass is the first base that is not a ``typing.Protocol``;
- the directly implemented interfaces are all remaining bases, in
  declaration order;
- ``object`` ends the superclass chain.
"""

import inspect
import logging
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .annotations import Annotation, annotations_of

logger = logging.getLogger(__name__)

_IGNORED_BASES = (object, typing.Generic, typing.Protocol)


@dataclass(frozen=True)
class MethodHandle:
    """A method bound at startup and invoked per request.

    ``parameters`` excludes the receiver. ``type_hints`` keeps
    ``typing.Annotated`` metadata so parameter bindings can be read from it.
    """

    name: str
    function: Callable
    declaring_class: type
    parameters: Tuple[inspect.Parameter, ...] = field(compare=False)
    type_hints: Dict[str, Any] = field(compare=False, hash=False)
    is_static: bool = field(default=False, compare=False)

    @classmethod
    def of(cls, declaring_class: type, name: str, member: Any) -> "MethodHandle":
        is_static = isinstance(member, (staticmethod, classmethod))
        function = member.__func__ if is_static else member
        parameters = tuple(inspect.signature(function).parameters.values())
        if not isinstance(member, staticmethod) and parameters:
            parameters = parameters[1:]
        return cls(
            name=name,
            function=function,
            declaring_class=declaring_class,
            parameters=parameters,
            type_hints=_type_hints(function),
            is_static=is_static,
        )

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    @property
    def is_abstract(self) -> bool:
        return bool(getattr(self.function, "__isabstractmethod__", False))

    def bind(self, instance: Any) -> Callable:
        """Look the method up on an instance (virtual dispatch)."""
        return getattr(instance, self.name)

    def __str__(self) -> str:
        return f"{self.name}({', '.join(self.parameter_names)})"


def _type_hints(function: Callable) -> Dict[str, Any]:
    """Resolve annotations, keeping Annotated metadata.

    Falls back to the raw annotations when forward references cannot be
    resolved.
    """
    try:
        return typing.get_type_hints(function, include_extras=True)
    except (NameError, TypeError) as e:
        logger.debug(f"Could not resolve type hints of {function!r}: {e}")
        return dict(getattr(function, "__annotations__", {}))


def _is_protocol(cls: type) -> bool:
    return bool(getattr(cls, "_is_protocol", False))


class ResourceType(ABC):
    """Read-only view of a class-like entity whose methods may become routes."""

    @property
    @abstractmethod
    def python_class(self) -> type:
        """The class instances of this resource type belong to."""

    @property
    def name(self) -> str:
        cls = self.python_class
        return f"{cls.__module__}.{cls.__qualname__}"

    @abstractmethod
    def methods(self) -> List[MethodHandle]:
        """All methods visible on the type, inherited ones included."""

    @abstractmethod
    def superclass(self) -> Optional["ResourceType"]:
        """The direct superclass, or None at the top of the hierarchy."""

    @abstractmethod
    def direct_interfaces(self) -> List["ResourceType"]:
        """Interfaces the type itself declares, in declaration order."""

    @abstractmethod
    def declared_method(self, name: str, parameter_names: Tuple[str, ...]) -> Optional[MethodHandle]:
        """The signature-compatible method declared by this very type, if any."""

    @abstractmethod
    def annotations_on(self, member: Optional[MethodHandle] = None) -> Tuple[Annotation, ...]:
        """Annotations declared on a member, or on the type itself if member is None."""

    def __eq__(self, other):
        if isinstance(other, ResourceType):
            return self.python_class is other.python_class
        return NotImplemented

    def __hash__(self):
        return hash(self.python_class)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.python_class.__qualname__})"


class ClassResourceType(ResourceType):
    """ResourceType backed by Python class reflection."""

    def __init__(self, cls: type):
        if not inspect.isclass(cls):
            raise TypeError(f"Resource type must be a class, got {cls!r}")
        self._cls = cls

    @property
    def python_class(self) -> type:
        return self._cls

    def _bases(self) -> List[type]:
        return [base for base in self._cls.__bases__ if base not in _IGNORED_BASES]

    def superclass(self) -> Optional["ClassResourceType"]:
        for base in self._bases():
            if not _is_protocol(base):
                return ClassResourceType(base)
        return None

    def direct_interfaces(self) -> List["ClassResourceType"]:
        superclass = self.superclass()
        return [
            ClassResourceType(base)
            for base in self._bases()
            if superclass is None or base is not superclass.python_class
        ]

    def methods(self) -> List[MethodHandle]:
        handles: List[MethodHandle] = []
        seen = set()
        for klass in inspect.getmro(self._cls):
            if klass in _IGNORED_BASES:
                continue
            for name, member in vars(klass).items():
                if name in seen:
                    continue
                if inspect.isfunction(member) or isinstance(member, (staticmethod, classmethod)):
                    seen.add(name)
                    handles.append(MethodHandle.of(klass, name, member))
                elif name in vars(klass) and not name.startswith("__"):
                    # A non-callable attribute shadows anything further up the MRO
                    seen.add(name)
        return handles

    def declared_method(self, name: str, parameter_names: Tuple[str, ...]) -> Optional[MethodHandle]:
        member = vars(self._cls).get(name)
        if member is None:
            return None
        if not (inspect.isfunction(member) or isinstance(member, (staticmethod, classmethod))):
            return None
        handle = MethodHandle.of(self._cls, name, member)
        if handle.parameter_names != tuple(parameter_names):
            return None
        return handle

    def annotations_on(self, member: Optional[MethodHandle] = None) -> Tuple[Annotation, ...]:
        if member is None:
            return annotations_of(self._cls)
        return annotations_of(member.function)
