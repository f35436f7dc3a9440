"""
Parameter binding plans for resource methods.

Every declared parameter of a resource method gets exactly one binding:

- a *named* binding when its ``Annotated`` metadata holds a ``PathParam``,
  ``QueryParam``, ``HeaderParam`` or ``CookieParam`` (the first one wins);
- an *entity* binding otherwise. The entity is the request body read into
  the parameter's declared type.

Plans are computed once at startup and shared, read-only, by all requests.
"""

import inspect
import logging
import typing
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError

from .annotations import BINDING_ANNOTATIONS, DefaultValue, ParamSource
from .exceptions import ParameterBindingError, ResourceDefinitionError
from .introspection import MethodHandle
from .models import Request

logger = logging.getLogger(__name__)

_MISSING = inspect.Parameter.empty


def _split_annotated(hint: Any) -> Tuple[Any, Tuple[Any, ...]]:
    """Return the declared type and the Annotated metadata of a type hint."""
    if hint is _MISSING:
        return Any, ()
    if typing.get_origin(hint) is typing.Annotated:
        return typing.get_args(hint)[0], tuple(hint.__metadata__)
    return hint, ()


def _accepts_none(parameter_type: Any) -> bool:
    if parameter_type is Any or parameter_type is None or parameter_type is type(None):
        return True
    return type(None) in typing.get_args(parameter_type)


@dataclass(frozen=True)
class ParameterBinding:
    """How one declared parameter receives its value.

    ``source`` is None for the entity binding. ``default`` holds either a raw
    ``DefaultValue`` string (converted like a request value) or the Python
    default (used as is).
    """

    position: int
    name: str
    parameter_type: Any
    source: Optional[ParamSource] = None
    binding_name: Optional[str] = None
    default: Any = _MISSING
    default_is_raw: bool = False
    keyword_only: bool = False
    adapter: Optional[TypeAdapter] = field(default=None, compare=False, repr=False)

    @property
    def is_entity(self) -> bool:
        return self.source is None

    def _raw_value(self, request: Request) -> Optional[str]:
        if self.source is ParamSource.PATH:
            return (request.path_params or {}).get(self.binding_name)
        if self.source is ParamSource.QUERY:
            return (request.query_params or {}).get(self.binding_name)
        if self.source is ParamSource.HEADER:
            return request.headers.get(self.binding_name)
        if self.source is ParamSource.COOKIE:
            return request.cookies.get(self.binding_name)
        raise ValueError(f"Entity binding '{self.name}' has no named value")

    def value_from(self, request: Request) -> Any:
        """Extract and convert a named value from the request."""
        raw = self._raw_value(request)
        if raw is None:
            if self.default is _MISSING:
                if _accepts_none(self.parameter_type):
                    return None
                raise ParameterBindingError(
                    f"Missing {self.source.value} parameter '{self.binding_name}'",
                    parameter=self.binding_name,
                )
            if not self.default_is_raw:
                return self.default
            raw = self.default

        if self.adapter is None:
            return raw
        try:
            return self.adapter.validate_python(raw)
        except ValidationError as e:
            raise ParameterBindingError(
                f"Invalid value for {self.source.value} parameter '{self.binding_name}'",
                parameter=self.binding_name,
                cause=e,
            ) from e


class BindingPlan(tuple):
    """Ordered bindings of one resource method, one per declared parameter."""

    @property
    def entity(self) -> Optional[ParameterBinding]:
        for binding in self:
            if binding.is_entity:
                return binding
        return None

    def arguments(self, values: List[Any]) -> Tuple[List[Any], Dict[str, Any]]:
        """Split resolved values into positional and keyword-only arguments."""
        args, kwargs = [], {}
        for binding, value in zip(self, values):
            if binding.keyword_only:
                kwargs[binding.name] = value
            else:
                args.append(value)
        return args, kwargs


class ParameterBinder:
    """Classifies the parameters of a resource method."""

    def bind(self, method: MethodHandle) -> BindingPlan:
        bindings = []
        for position, parameter in enumerate(method.parameters):
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise ResourceDefinitionError(
                    f"{method}: variadic parameter '{parameter.name}' cannot be bound"
                )
            hint = method.type_hints.get(parameter.name, parameter.annotation)
            parameter_type, metadata = _split_annotated(hint)
            bindings.append(self._binding(method, position, parameter, parameter_type, metadata))

        entities = [b.name for b in bindings if b.is_entity]
        if len(entities) > 1:
            raise ResourceDefinitionError(
                f"{method}: more than one parameter would be bound to the request entity: "
                f"{', '.join(entities)}"
            )

        plan = BindingPlan(bindings)
        logger.debug(f"Binding plan for {method}: {list(plan)}")
        return plan

    def _binding(self, method, position, parameter, parameter_type, metadata) -> ParameterBinding:
        keyword_only = parameter.kind is inspect.Parameter.KEYWORD_ONLY
        named = next((m for m in metadata if isinstance(m, BINDING_ANNOTATIONS)), None)
        if named is None:
            return ParameterBinding(
                position=position,
                name=parameter.name,
                parameter_type=parameter_type,
                keyword_only=keyword_only,
            )

        default, default_is_raw = parameter.default, False
        default_value = next((m for m in metadata if isinstance(m, DefaultValue)), None)
        if default_value is not None:
            default, default_is_raw = default_value.value, True

        adapter = None
        if parameter_type is not Any:
            try:
                adapter = TypeAdapter(parameter_type)
            except PydanticSchemaGenerationError as e:
                raise ResourceDefinitionError(
                    f"{method}: cannot convert request values to {parameter_type!r} "
                    f"for parameter '{parameter.name}'"
                ) from e

        return ParameterBinding(
            position=position,
            name=parameter.name,
            parameter_type=parameter_type,
            source=named.source,
            binding_name=named.name,
            default=default,
            default_is_raw=default_is_raw,
            keyword_only=keyword_only,
            adapter=adapter,
        )
