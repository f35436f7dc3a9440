"""
Content readers turn a request entity into the value of an entity parameter.

A reader is any callable ``reader(body: bytes, target_type) -> value``, sync or
async, registered for a target type::

    readers = ContentReaders()

    @readers.register(Gorp)
    def read_gorp(body, target_type):
        return Gorp.parse(body)

Lookup walks the target type's MRO, so a reader registered for a base class
serves its subclasses. Types without a registered reader fall back to the
built-in readers: ``bytes`` (the raw entity, also used for ``Any`` unless
the entity is JSON), ``str`` (decoded with the request charset, then UTF-8,
then Latin-1) and pydantic JSON validation for any other type.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError

from .concurrency import call_maybe_async
from .descriptors import MediaType
from .exceptions import ReadError

logger = logging.getLogger(__name__)

ContentReader = Callable[[bytes, Any], Any]

JSON_SUBTYPES = ("json",)


def decode_bytes(data: bytes, media_type: Optional[MediaType] = None) -> str:
    """Decode bytes with the media type's charset, falling back to UTF-8 then Latin-1."""
    if not data:
        return ""

    charset = media_type.parameter("charset") if media_type is not None else None
    if charset:
        try:
            return data.decode(charset)
        except (UnicodeDecodeError, LookupError):
            pass

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass

    # Latin-1 maps every byte value
    return data.decode("latin1")


def is_json(media_type: Optional[MediaType]) -> bool:
    if media_type is None:
        return False
    return media_type.type == "application" and (
        media_type.subtype in JSON_SUBTYPES or media_type.subtype.endswith("+json")
    )


class ContentReaders:
    """Registry of content readers keyed by target type."""

    def __init__(self):
        self._readers: Dict[Any, ContentReader] = {}
        self._adapters: Dict[Any, TypeAdapter] = {}

    def register(self, target_type: Any, reader: Optional[ContentReader] = None):
        """Register a reader for a type. Usable directly or as a decorator."""
        def decorator(func: ContentReader) -> ContentReader:
            self._readers[target_type] = func
            logger.debug(f"Registered content reader {getattr(func, '__name__', func)!r} for {target_type!r}")
            return func

        if reader is not None:
            return decorator(reader)
        return decorator

    def reader_for(self, target_type: Any) -> Optional[ContentReader]:
        if target_type in self._readers:
            return self._readers[target_type]
        if inspect.isclass(target_type):
            for base in inspect.getmro(target_type)[1:]:
                if base in self._readers:
                    return self._readers[base]
        return None

    def prepare(self, target_type: Any) -> None:
        """Build the JSON validator for a type ahead of the first request."""
        if self.reader_for(target_type) is not None or target_type in (bytes, str, Any):
            return
        if target_type in self._adapters:
            return
        try:
            self._adapters[target_type] = TypeAdapter(target_type)
        except PydanticSchemaGenerationError:
            # Only readable through a reader registered later
            logger.debug(f"No JSON validator available for {target_type!r}")

    def _adapter(self, target_type: Any) -> TypeAdapter:
        adapter = self._adapters.get(target_type)
        if adapter is not None:
            return adapter
        try:
            return TypeAdapter(target_type)
        except PydanticSchemaGenerationError as e:
            raise ReadError(f"No content reader for {target_type!r}", original_exception=e) from e

    async def read(self, body: bytes, target_type: Any, media_type: Optional[MediaType] = None) -> Any:
        """Read an entity into ``target_type``. Failures raise ReadError."""
        reader = self.reader_for(target_type)
        if reader is not None:
            try:
                return await call_maybe_async(reader, body, target_type)
            except ReadError:
                raise
            except Exception as e:
                raise ReadError(f"Failed to read {target_type!r}: {e}", original_exception=e) from e

        if target_type is bytes or (target_type is Any and not is_json(media_type)):
            return body
        if target_type is str:
            return decode_bytes(body, media_type)

        if media_type is not None and not is_json(media_type):
            raise ReadError(f"No content reader for {target_type!r} from {media_type}")
        try:
            return self._adapter(target_type).validate_json(body)
        except ValidationError as e:
            raise ReadError(f"Invalid JSON entity for {target_type!r}", original_exception=e) from e
