"""
Content renderers for different media types.
"""

import json
import logging
from typing import Any, FrozenSet, List, Optional, Tuple, Union

from jinja2 import Template

from .descriptors import MediaType, parse_accept
from .exceptions import NotAcceptable
from .models import Request

logger = logging.getLogger(__name__)


def _to_plain(data: Any) -> Any:
    """Convert Pydantic models to JSON-compatible structures."""
    if hasattr(data, "model_dump"):
        return data.model_dump(mode="json")
    elif isinstance(data, (list, tuple)):
        return [_to_plain(item) for item in data]
    elif isinstance(data, dict):
        return {key: _to_plain(value) for key, value in data.items()}
    else:
        return data


class ContentRenderer:
    """Base class for content renderers."""

    def __init__(self, media_type: str):
        self.media_type = MediaType.parse(media_type)

    def can_render(self, media_type: MediaType) -> bool:
        """Check if this renderer produces a type compatible with ``media_type``."""
        return self.media_type.is_compatible(media_type)

    def render(self, data: Any, request: Request) -> Union[str, bytes]:
        """Render the data as this content type."""
        raise NotImplementedError

    def __repr__(self):
        return f"{self.__class__.__name__}({self.media_type})"


class JSONRenderer(ContentRenderer):
    """JSON content renderer."""

    def __init__(self):
        super().__init__("application/json")

    def render(self, data: Any, request: Request) -> str:
        """Render data as JSON."""
        data = _to_plain(data)

        try:
            return json.dumps(data)
        except (TypeError, ValueError):
            return json.dumps({"data": str(data)})


class PlainTextRenderer(ContentRenderer):
    """Plain text content renderer."""

    def __init__(self):
        super().__init__("text/plain")

    def render(self, data: Any, request: Request) -> str:
        """Render data as plain text."""
        if isinstance(data, str):
            return data
        elif isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        elif isinstance(data, dict):
            return "\n".join(f"{k}: {v}" for k, v in data.items())
        elif isinstance(data, list):
            return "\n".join(str(item) for item in data)
        else:
            return str(data)


# Recursive fragment: mappings and sequences become nested lists
_HTML_FRAGMENT = Template(
    "{% macro show(value) %}"
    "{% if value is mapping %}"
    "<ul>{% for key, item in value.items() %}"
    '<li><span class="key">{{ key }}:</span> {{ show(item) }}</li>'
    "{% endfor %}</ul>"
    "{% elif value is iterable and value is not string %}"
    "<ul>{% for item in value %}<li>{{ show(item) }}</li>{% endfor %}</ul>"
    "{% else %}"
    '<span class="value">{{ value }}</span>'
    "{% endif %}"
    "{% endmacro %}"
    "{% if data is mapping or (data is iterable and data is not string) %}"
    "{{ show(data) }}"
    "{% else %}<p>{{ data }}</p>{% endif %}",
    autoescape=True,
)


class HTMLRenderer(ContentRenderer):
    """HTML content renderer.

    Values are rendered into an autoescaped Jinja2 fragment. Strings that
    already look like HTML are passed through unchanged.
    """

    def __init__(self):
        super().__init__("text/html")

    def render(self, data: Any, request: Request) -> str:
        """Render data as an HTML fragment."""
        if isinstance(data, str) and data.strip().startswith("<"):
            # Already HTML
            return data
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        return _HTML_FRAGMENT.render(data=_to_plain(data))


class ContentRenderers:
    """Ordered collection of renderers plus the media-type selection between them."""

    def __init__(self, renderers: Optional[List[ContentRenderer]] = None):
        if renderers is None:
            renderers = [JSONRenderer(), PlainTextRenderer(), HTMLRenderer()]
        self._renderers: List[ContentRenderer] = list(renderers)

    def add(self, renderer: ContentRenderer) -> None:
        """Add a renderer; later renderers take precedence for the same media type."""
        self._renderers.insert(0, renderer)

    def __iter__(self):
        return iter(self._renderers)

    def renderer_for(self, media_type: MediaType) -> Optional[ContentRenderer]:
        for renderer in self._renderers:
            if renderer.media_type == media_type:
                return renderer
        return None

    def _offered(self, produces: FrozenSet[MediaType], default: MediaType) -> List[MediaType]:
        """Concrete media types a method can answer with, most preferred first.

        Wildcards in ``produces`` expand to the renderers they cover, with the
        default media type first.
        """
        offered: List[MediaType] = []
        for media_type in sorted(produces, key=str):
            if media_type.type != "*" and media_type.subtype != "*":
                offered.append(media_type)

        wildcards = [m for m in produces if m.type == "*" or m.subtype == "*"]
        if wildcards:
            candidates = [default] + [r.media_type for r in self._renderers]
            for candidate in candidates:
                if candidate not in offered and any(w.is_compatible(candidate) for w in wildcards):
                    offered.append(candidate)
        return offered

    def negotiate(self, produces: FrozenSet[MediaType], accept_header: Optional[str],
                  default: MediaType) -> Tuple[MediaType, Optional[ContentRenderer]]:
        """Pick the media type for a response.

        Accept entries are tried in quality order against the offered types.
        Raises NotAcceptable when nothing the method produces is accepted.
        """
        offered = self._offered(produces, default)
        for accepted in parse_accept(accept_header):
            for media_type in offered:
                if media_type.is_compatible(accepted):
                    return media_type, self.renderer_for(media_type)

        raise NotAcceptable(
            f"Not Acceptable. Available types: {', '.join(str(m) for m in offered)}"
        )
