"""Tests for annotation resolution across class hierarchies."""

from abc import ABC, abstractmethod
from typing import Protocol

import pytest

from resourcemachine import (
    DELETE,
    GET,
    POST,
    Annotation,
    AmbiguousInterfaceAnnotation,
    AnnotationResolver,
    ClassResourceType,
    Consumes,
    HTTPMethod,
    MediaType,
    Path,
    Produces,
    ResourceDefinitionError,
    ResourceMethodResolver,
    http_method,
)
from resourcemachine.descriptors import WILDCARD
from resourcemachine.resolver import http_method_value, media_types_value, path_value


def handle(cls, name):
    return next(m for m in ClassResourceType(cls).methods() if m.name == name)


def descriptors_of(cls, app_path=""):
    return ResourceMethodResolver().resolve_all(ClassResourceType(cls), app_path)


def descriptor_for(cls, name, app_path=""):
    return next(d for d in descriptors_of(cls, app_path) if d.method.name == name)


# Three-level fixture: every level declares a different path for `get`

class Lookup(Protocol):
    @GET
    @Path("interface")
    def get(self, key): ...


class BaseLookup:
    @Path("superclass")
    def get(self, key):
        return "base"


class MethodLevel(BaseLookup, Lookup):
    @Path("method")
    def get(self, key):
        return "method"


class SuperclassLevel(BaseLookup, Lookup):
    def get(self, key):
        return "superclass"


class PlainBase:
    def get(self, key):
        return "plain"


class InterfaceLevel(PlainBase, Lookup):
    def get(self, key):
        return "interface"


class NowhereLevel(PlainBase):
    def get(self, key):
        return "nowhere"


class TestInheritancePrecedence:
    """Test that the closest declaration wins: method, superclass, then interface."""

    def test_method_level_value_wins(self):
        resolver = AnnotationResolver()
        assert resolver.resolve(handle(MethodLevel, "get"), path_value) == "method"

    def test_superclass_value_used_when_method_has_none(self):
        resolver = AnnotationResolver()
        assert resolver.resolve(handle(SuperclassLevel, "get"), path_value) == "superclass"

    def test_interface_value_used_when_no_class_declares_one(self):
        resolver = AnnotationResolver()
        assert resolver.resolve(handle(InterfaceLevel, "get"), path_value) == "interface"

    def test_absent_everywhere(self):
        resolver = AnnotationResolver()
        assert resolver.resolve(handle(NowhereLevel, "get"), path_value) is None

    def test_verb_inherited_from_interface(self):
        resolver = AnnotationResolver()
        assert resolver.resolve(handle(MethodLevel, "get"), http_method_value) == "GET"

    def test_different_parameter_names_are_not_overrides(self):
        class Renamed(BaseLookup):
            def get(self, other):
                return "renamed"

        resolver = AnnotationResolver()
        assert resolver.resolve(handle(Renamed, "get"), path_value) is None

    def test_annotations_are_not_inherited_through_attributes(self):
        assert "__resource_annotations__" not in vars(SuperclassLevel.get)


class Listing(Protocol):
    @GET
    @Produces("application/a")
    def items(self): ...


class GrandparentWithInterface(Listing):
    pass


class ParentWithoutOverride(GrandparentWithInterface):
    pass


class ListingResource(ParentWithoutOverride):
    @Path("items")
    def items(self):
        return []


class TestInterfaceAnnotations:
    """Test annotations declared on interfaces of the class and of its ancestors."""

    def test_interface_produces_used_instead_of_wildcard(self):
        descriptor = descriptor_for(ListingResource, "items")
        assert descriptor.produces == frozenset([MediaType.parse("application/a")])

    def test_interface_produces_raw_value(self):
        resolver = AnnotationResolver()
        method = handle(ListingResource, "items")
        assert resolver.resolve(method, media_types_value(Produces)) == ("application/a",)

    def test_interface_of_ancestor_supplies_verb(self):
        descriptor = descriptor_for(ListingResource, "items")
        assert descriptor.http_method is HTTPMethod.GET
        assert descriptor.path == "items"

    def test_consumes_defaults_to_wildcard(self):
        descriptor = descriptor_for(ListingResource, "items")
        assert descriptor.consumes == frozenset([WILDCARD])


class JsonRenderable(Protocol):
    @GET
    @Produces("application/json")
    def show(self): ...


class TextRenderable(Protocol):
    @GET
    @Produces("text/plain")
    def show(self): ...


class BothRenderable(JsonRenderable, TextRenderable):
    def show(self):
        return "shown"


class TextBase(TextRenderable):
    def show(self):
        return "base"


class NearAndFar(TextBase, JsonRenderable):
    def show(self):
        return "near"


class TestInterfaceTieBreak:
    """Test sibling interfaces that disagree."""

    def test_first_declared_interface_wins(self):
        resolver = AnnotationResolver()
        method = handle(BothRenderable, "show")
        assert resolver.resolve(method, media_types_value(Produces)) == ("application/json",)

    def test_strict_mode_rejects_disagreeing_siblings(self):
        resolver = AnnotationResolver(strict=True)
        method = handle(BothRenderable, "show")
        with pytest.raises(AmbiguousInterfaceAnnotation) as exc_info:
            resolver.resolve(method, media_types_value(Produces))
        assert "show" in str(exc_info.value)

    def test_strict_mode_accepts_agreeing_siblings(self):
        resolver = AnnotationResolver(strict=True)
        assert resolver.resolve(handle(BothRenderable, "show"), http_method_value) == "GET"

    def test_strict_mode_prefers_shallower_interface(self):
        resolver = AnnotationResolver(strict=True)
        method = handle(NearAndFar, "show")
        assert resolver.resolve(method, media_types_value(Produces)) == ("application/json",)

    def test_strict_mode_fails_resolution_of_resource(self):
        resolver = ResourceMethodResolver(AnnotationResolver(strict=True))
        with pytest.raises(AmbiguousInterfaceAnnotation):
            resolver.resolve_all(ClassResourceType(BothRenderable))


@Path("frob")
class FrobBase:
    pass


class Frob(FrobBase):
    @GET
    @Path("foo")
    def get(self):
        return "foo"

    @POST
    def create(self, body):
        return body


@Path("/things/")
class Things:
    @GET
    def list(self):
        return []

    @DELETE
    @Path("/{id}/")
    def remove(self, id):
        return None


class TestResourceMethodResolver:
    """Test descriptor construction for whole resource types."""

    def test_paths_are_composed_from_application_class_and_method(self):
        descriptor = descriptor_for(Frob, "get", app_path="foo")
        assert descriptor.path == "foo/frob/foo"

    def test_class_path_is_inherited(self):
        descriptor = descriptor_for(Frob, "create")
        assert descriptor.path == "frob"
        assert descriptor.http_method is HTTPMethod.POST

    def test_slashes_are_normalized(self):
        assert descriptor_for(Things, "list", app_path="/api/").path == "api/things"
        assert descriptor_for(Things, "remove", app_path="/api/").path == "api/things/{id}"

    def test_one_descriptor_per_resource_method(self):
        assert {d.method.name for d in descriptors_of(Frob)} == {"get", "create"}

    def test_descriptor_string_form(self):
        text = str(descriptor_for(Frob, "get", app_path="foo"))
        assert text.startswith('@Path("foo/frob/foo") @GET @Produces("*/*") @Consumes("*/*")')
        assert text.endswith("Frob#get()")

    def test_descriptor_owner_is_the_resolved_type(self):
        descriptor = descriptor_for(Frob, "create")
        assert descriptor.resource_type == ClassResourceType(Frob)
        assert descriptor.method.declaring_class is Frob

    def test_comma_separated_media_types(self):
        class Multi:
            @GET
            @Produces("text/plain, application/json")
            @Consumes("application/json", "application/xml")
            def get(self):
                return ""

        descriptor = descriptor_for(Multi, "get")
        assert descriptor.produces == frozenset(
            [MediaType.parse("text/plain"), MediaType.parse("application/json")]
        )
        assert len(descriptor.consumes) == 2

    def test_empty_media_type_list_defaults_to_wildcard(self):
        class Empty:
            @GET
            @Produces()
            def get(self):
                return ""

        assert descriptor_for(Empty, "get").produces == frozenset([WILDCARD])

    def test_malformed_media_type_fails(self):
        class Broken:
            @GET
            @Produces("not a media type")
            def get(self):
                return ""

        with pytest.raises(ResourceDefinitionError):
            descriptors_of(Broken)


class TestMethodExclusion:
    """Test which methods never become resource methods."""

    def test_methods_without_verb_are_skipped(self):
        class Helpers:
            @Path("helper")
            @Produces("text/plain")
            @Consumes("text/plain")
            def helper(self):
                return "help"

            def plain(self):
                return "plain"

            @GET
            def real(self):
                return "real"

        assert {d.method.name for d in descriptors_of(Helpers)} == {"real"}

    def test_class_without_resource_methods_yields_nothing(self):
        class NotAResource:
            def get(self):
                return None

        assert descriptors_of(NotAResource) == frozenset()

    def test_static_and_class_methods_are_skipped(self):
        class Statics:
            @GET
            @staticmethod
            def static():
                return "static"

            @POST
            @classmethod
            def klass(cls):
                return "class"

        assert descriptors_of(Statics) == frozenset()

    def test_private_methods_are_skipped(self):
        class Private:
            @GET
            def _hidden(self):
                return "hidden"

        assert descriptors_of(Private) == frozenset()

    def test_abstract_methods_are_skipped(self):
        class AbstractResource(ABC):
            @GET
            @abstractmethod
            def get(self):
                ...

        class ConcreteResource(AbstractResource):
            def get(self):
                return "concrete"

        assert descriptors_of(AbstractResource) == frozenset()
        assert descriptor_for(ConcreteResource, "get").http_method is HTTPMethod.GET


@http_method("PATCH")
class Amend(Annotation):
    pass


@http_method("FROB")
class Frobnicate(Annotation):
    pass


class TestCustomVerbs:
    """Test verb annotations declared with the http_method meta-annotation."""

    def test_custom_annotation_maps_to_verb(self):
        class Amendable:
            @Amend()
            def amend(self):
                return None

        assert descriptor_for(Amendable, "amend").http_method is HTTPMethod.PATCH

    def test_unsupported_verb_fails(self):
        class Frobnicating:
            @Frobnicate()
            def frob(self):
                return None

        with pytest.raises(ResourceDefinitionError):
            descriptors_of(Frobnicating)
