"""
Resolution of resource metadata across class hierarchies.

Annotations are never inherited through attribute lookup. A method inherits
metadata only through the explicit walk implemented by ``AnnotationResolver``:

1. the method itself;
2. the signature-compatible method of each superclass, nearest first;
3. the signature-compatible method of each interface implemented by the
   declaring class or by a visited superclass, in discovery order.

The first non-None value wins.
"""

import logging
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Type

from .annotations import Annotation, Consumes, Path, Produces, http_method_of
from .descriptors import WILDCARD, MediaType, ResourceMethodDescriptor
from .exceptions import AmbiguousInterfaceAnnotation, ResourceDefinitionError
from .introspection import ClassResourceType, MethodHandle, ResourceType
from .models import HTTPMethod
from .paths import compose

logger = logging.getLogger(__name__)

Extractor = Callable[[Tuple[Annotation, ...]], Optional[Any]]
AnnotationLookup = Callable[[ResourceType], Optional[Tuple[Annotation, ...]]]


def path_value(annotations: Tuple[Annotation, ...]) -> Optional[str]:
    for annotation in annotations:
        if isinstance(annotation, Path):
            return annotation.value
    return None


def http_method_value(annotations: Tuple[Annotation, ...]) -> Optional[str]:
    """Return the verb of the first annotation whose class is marked with ``http_method``."""
    for annotation in annotations:
        verb = http_method_of(annotation)
        if verb is not None:
            return verb
    return None


def media_types_value(kind: Type[Annotation]) -> Extractor:
    def extract(annotations: Tuple[Annotation, ...]) -> Optional[Tuple[str, ...]]:
        for annotation in annotations:
            if isinstance(annotation, kind):
                return annotation.value
        return None
    return extract


class AnnotationResolver:
    """Resolves annotation values for methods and classes.

    With ``strict=True``, two interfaces discovered at the same depth that
    yield different values raise ``AmbiguousInterfaceAnnotation`` instead of
    the first one winning.
    """

    def __init__(self, strict: bool = False, type_of: Callable[[type], ResourceType] = ClassResourceType):
        self.strict = strict
        self._type_of = type_of

    def resolve(self, method: MethodHandle, extractor: Extractor) -> Optional[Any]:
        """Resolve a value for a method, searching overridden and interface methods."""
        def lookup(resource_type: ResourceType) -> Optional[Tuple[Annotation, ...]]:
            candidate = resource_type.declared_method(method.name, method.parameter_names)
            if candidate is None:
                return None
            return resource_type.annotations_on(candidate)

        declaring = self._type_of(method.declaring_class)
        return self._search(declaring, lookup, extractor, str(method))

    def resolve_type(self, resource_type: ResourceType, extractor: Extractor) -> Optional[Any]:
        """Resolve a class-level value: the class, its superclasses, then interfaces."""
        def lookup(candidate: ResourceType) -> Tuple[Annotation, ...]:
            return candidate.annotations_on(None)

        return self._search(resource_type, lookup, extractor, resource_type.name)

    def _search(self, start: ResourceType, lookup: AnnotationLookup, extractor: Extractor, label: str):
        # interface -> depth of the class that declared it, in discovery order
        interfaces: Dict[ResourceType, int] = {}
        current: Optional[ResourceType] = start
        depth = 0
        while current is not None:
            annotations = lookup(current)
            if annotations is not None:
                value = extractor(annotations)
                if value is not None:
                    return value
            for interface in current.direct_interfaces():
                interfaces.setdefault(interface, depth)
            current = current.superclass()
            depth += 1

        return self._search_interfaces(interfaces, lookup, extractor, label)

    def _search_interfaces(self, interfaces: Dict[ResourceType, int], lookup: AnnotationLookup,
                           extractor: Extractor, label: str):
        found = None
        found_in: Optional[ResourceType] = None
        found_depth = -1
        for interface, depth in interfaces.items():
            if found is not None and (not self.strict or depth != found_depth):
                break
            annotations = lookup(interface)
            if annotations is None:
                continue
            value = extractor(annotations)
            if value is None:
                continue
            if found is None:
                found, found_in, found_depth = value, interface, depth
            elif value != found:
                raise AmbiguousInterfaceAnnotation(
                    label, f"{found_in.name}: {found!r}", f"{interface.name}: {value!r}"
                )
        return found


def _is_candidate(method: MethodHandle) -> bool:
    return not method.name.startswith("_") and not method.is_static and not method.is_abstract


def _parse_media_types(values: Optional[Tuple[str, ...]], label: str) -> FrozenSet[MediaType]:
    media_types = set()
    for value in values or ():
        for text in value.split(","):
            if not text.strip():
                continue
            try:
                media_types.add(MediaType.parse(text))
            except ValueError as e:
                raise ResourceDefinitionError(f"{label}: {e}") from e
    return frozenset(media_types) or frozenset([WILDCARD])


class ResourceMethodResolver:
    """Builds the descriptors of every resource method of a resource type."""

    def __init__(self, annotation_resolver: Optional[AnnotationResolver] = None):
        self.annotations = annotation_resolver or AnnotationResolver()

    def resolve_all(self, resource_type: ResourceType, app_path: str = "") -> FrozenSet[ResourceMethodDescriptor]:
        base_path = compose(app_path, self.annotations.resolve_type(resource_type, path_value))
        descriptors = set()

        for method in resource_type.methods():
            if not _is_candidate(method):
                continue

            verb = self.annotations.resolve(method, http_method_value)
            if verb is None:
                logger.debug(f"Skipping {resource_type.name}#{method}: no HTTP method annotation")
                continue
            try:
                http_method = HTTPMethod(verb)
            except ValueError as e:
                raise ResourceDefinitionError(
                    f"{resource_type.name}#{method}: unsupported HTTP method {verb!r}"
                ) from e

            label = f"{resource_type.name}#{method}"
            descriptor = ResourceMethodDescriptor(
                resource_type=resource_type,
                http_method=http_method,
                path=compose(base_path, self.annotations.resolve(method, path_value)),
                consumes=_parse_media_types(self.annotations.resolve(method, media_types_value(Consumes)), label),
                produces=_parse_media_types(self.annotations.resolve(method, media_types_value(Produces)), label),
                method=method,
            )
            logger.debug(f"Resolved resource method {descriptor}")
            descriptors.add(descriptor)

        return frozenset(descriptors)
