"""
Resolved metadata of resource methods.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Tuple

from .introspection import MethodHandle, ResourceType
from .models import HTTPMethod

WILDCARD_TYPE = "*"


@dataclass(frozen=True)
class MediaType:
    """A media type such as ``text/plain; charset=utf-8``.

    Type and subtype are stored lowercase. Parameters do not take part in
    compatibility checks.
    """

    type: str
    subtype: str
    parameters: Tuple[Tuple[str, str], ...] = field(default=(), compare=False)

    @classmethod
    def parse(cls, text: str) -> "MediaType":
        """Parse a media type string, raising ValueError when malformed."""
        if text is None:
            raise ValueError("Media type must not be None")
        main, _, params = text.partition(";")
        main = main.strip()
        if main == WILDCARD_TYPE:
            main = "*/*"
        type_, sep, subtype = main.partition("/")
        type_, subtype = type_.strip().lower(), subtype.strip().lower()
        if not sep or not type_ or not subtype or "/" in subtype:
            raise ValueError(f"Malformed media type: {text!r}")
        if type_ == WILDCARD_TYPE and subtype != WILDCARD_TYPE:
            raise ValueError(f"Malformed media type: {text!r}")

        parameters = []
        for param in params.split(";"):
            if not param.strip():
                continue
            key, sep, value = param.partition("=")
            if not sep or not key.strip():
                raise ValueError(f"Malformed media type parameter in {text!r}")
            parameters.append((key.strip().lower(), value.strip().strip('"')))
        return cls(type_, subtype, tuple(parameters))

    @property
    def is_wildcard(self) -> bool:
        return self.type == WILDCARD_TYPE and self.subtype == WILDCARD_TYPE

    def parameter(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for key, value in self.parameters:
            if key == name.lower():
                return value
        return default

    def is_compatible(self, other: "MediaType") -> bool:
        """Check whether two media types match, honouring wildcards on either side."""
        if self.type == WILDCARD_TYPE or other.type == WILDCARD_TYPE:
            return True
        if self.type != other.type:
            return False
        return (
            self.subtype == WILDCARD_TYPE
            or other.subtype == WILDCARD_TYPE
            or self.subtype == other.subtype
        )

    def __str__(self) -> str:
        text = f"{self.type}/{self.subtype}"
        for key, value in self.parameters:
            text += f"; {key}={value}"
        return text


WILDCARD = MediaType(WILDCARD_TYPE, WILDCARD_TYPE)


def parse_accept(header: Optional[str]) -> List[MediaType]:
    """Parse an Accept header into media types ordered by quality.

    Entries that cannot be parsed and entries with ``q=0`` are dropped. A
    missing or empty header accepts anything.
    """
    if not header or not header.strip():
        return [WILDCARD]

    weighted = []
    for index, entry in enumerate(header.split(",")):
        if not entry.strip():
            continue
        try:
            media_type = MediaType.parse(entry)
        except ValueError:
            continue
        try:
            quality = float(media_type.parameter("q", "1"))
        except ValueError:
            quality = 1.0
        if quality <= 0:
            continue
        weighted.append((-quality, index, media_type))
    weighted.sort(key=lambda item: (item[0], item[1]))
    return [media_type for _, _, media_type in weighted]


def _render_media_types(media_types: Iterable[MediaType]) -> str:
    return ", ".join(f'"{m}"' for m in sorted(media_types, key=str))


@dataclass(frozen=True)
class ResourceMethodDescriptor:
    """Immutable record of one resolved resource method.

    A descriptor is only built once the HTTP method has been resolved, so
    ``http_method`` is never None. ``consumes`` and ``produces`` are never
    empty and default to ``{*/*}``.
    """

    resource_type: ResourceType
    http_method: HTTPMethod
    path: str
    consumes: FrozenSet[MediaType]
    produces: FrozenSet[MediaType]
    method: MethodHandle

    def __post_init__(self):
        if self.http_method is None:
            raise ValueError("A resource method descriptor requires an HTTP method")
        if not self.consumes or not self.produces:
            raise ValueError("Consumed and produced media types must not be empty")

    def consumes_media_type(self, media_type: MediaType) -> bool:
        return any(m.is_compatible(media_type) for m in self.consumes)

    def __str__(self) -> str:
        cls = self.resource_type.python_class
        return (
            f'@Path("{self.path}") @{self.http_method.value} '
            f"@Produces({_render_media_types(self.produces)}) "
            f"@Consumes({_render_media_types(self.consumes)}) "
            f"{cls.__module__}.{cls.__qualname__}#{self.method}"
        )
