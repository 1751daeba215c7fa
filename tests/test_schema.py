"""Tests for schema declaration and the metaclass that builds it."""

from typing import Annotated, ClassVar

import pytest

from formant import (
    AttributeSchema,
    FormatterKind,
    FormMeta,
    FormObject,
    ParserKind,
    SchemaBuilder,
    SchemaError,
    parse,
    reformat,
    validates,
)


class TestMarkers:
    """Test parse/reformat/validates declarations."""

    def test_parse_marker(self):
        spec = parse("strip_whitespace", squish=True)
        assert spec.kind is ParserKind.STRIP_WHITESPACE
        assert dict(spec.options) == {"squish": True}

    def test_reformat_marker(self):
        spec = reformat("datetime", format="day_date_time", locale="en")
        assert spec.kind is FormatterKind.DATETIME
        assert dict(spec.options) == {"format": "day_date_time", "locale": "en"}

    def test_options_are_frozen(self):
        spec = parse("strip_whitespace", squish=True)
        with pytest.raises(TypeError):
            spec.options["squish"] = False

    def test_unknown_parser(self):
        with pytest.raises(SchemaError, match="Unknown parser 'zip_code'"):
            parse("zip_code")

    def test_unknown_formatter(self):
        with pytest.raises(SchemaError, match="Unknown formatter 'percentage'"):
            reformat("percentage")

    def test_unknown_option(self):
        with pytest.raises(SchemaError, match="squash"):
            parse("strip_whitespace", squash=True)
        with pytest.raises(SchemaError, match="country"):
            reformat("phone_number", country="US")

    def test_config_is_not_a_declarable_option(self):
        with pytest.raises(SchemaError):
            parse("currency", config=None)

    def test_validates_marker(self):
        marker = validates(presence=True, length={"maximum": 5}, format=False)
        assert [rule.kind for rule in marker.rules] == ["presence", "length"]
        assert dict(marker.rules[1].options) == {"maximum": 5}

    def test_unknown_rule(self):
        with pytest.raises(SchemaError, match="not registered"):
            validates(uniqueness=True)

    def test_unknown_rule_option(self):
        with pytest.raises(SchemaError, match="longest"):
            validates(length={"longest": 3})

    def test_rule_options_must_be_mapping(self):
        with pytest.raises(SchemaError, match="must be True or a mapping"):
            validates(length=3)

    def test_unknown_time_zone_option(self):
        with pytest.raises(SchemaError, match="Mars/Olympus"):
            parse("datetime", time_zone="Mars/Olympus")
        with pytest.raises(SchemaError, match="Mars/Olympus"):
            reformat("datetime", time_zone="Mars/Olympus")

    def test_unknown_time_zone_fails_at_class_creation(self):
        with pytest.raises(SchemaError):

            class Form(FormObject):
                when: Annotated[str, parse("datetime", time_zone="Mars/Olympus")]

    def test_known_time_zone_option(self):
        spec = parse("datetime", time_zone="Europe/Paris")
        assert spec.options["time_zone"] == "Europe/Paris"


class TestSchemaBuilder:
    """Test assembling schemas directly."""

    def test_build_in_declaration_order(self):
        schema = (
            SchemaBuilder()
            .attribute("phone", parse("phone_number"))
            .attribute("name", validates(presence=True), default="anon")
            .reformat("phone", "phone_number", country_code="US")
            .validates("phone", presence=True)
            .build()
        )

        assert isinstance(schema, AttributeSchema)
        assert schema.names() == ["phone", "name"]
        phone = schema.get("phone")
        assert phone.parse.kind is ParserKind.PHONE_NUMBER
        assert phone.reformat.kind is FormatterKind.PHONE_NUMBER
        assert [rule.kind for rule in phone.rules] == ["presence"]
        assert schema.get("name").default == "anon"
        assert "phone" in schema
        assert len(schema) == 2

    def test_undeclared_attribute(self):
        with pytest.raises(SchemaError, match="has not been declared"):
            SchemaBuilder().parse("phone", "phone_number")

    def test_invalid_attribute_name(self):
        with pytest.raises(SchemaError):
            SchemaBuilder().attribute("_hidden")
        with pytest.raises(SchemaError):
            SchemaBuilder().attribute("not valid")

    def test_callbacks_keep_registration_order(self):
        def first(form):
            pass

        def second(form):
            pass

        schema = SchemaBuilder().before_validation(first).before_validation(second).build()
        assert schema.before_validation == (first, second)
        assert schema.after_validation == ()

    def test_callbacks_must_be_callable(self):
        with pytest.raises(SchemaError):
            SchemaBuilder().after_validation("not callable")

    def test_extend_copies_base(self):
        base = SchemaBuilder().attribute("name", validates(presence=True)).build()
        extended = SchemaBuilder(base).attribute("email").build()
        assert extended.names() == ["name", "email"]
        assert base.names() == ["name"]

    def test_extra_metadata_is_kept(self):
        schema = SchemaBuilder().attribute("age", "years", parse("currency")).build()
        assert schema.get("age").metadata == ("years",)

    def test_schema_is_immutable(self):
        schema = SchemaBuilder().attribute("name").build()
        with pytest.raises(AttributeError):
            schema.attributes = ()


class TestFormMeta:
    """Test schema collection from class bodies."""

    def test_plain_annotations_declare_attributes(self):
        class Form(FormObject):
            first: str
            second: int

        assert Form.get_attribute_names() == ["first", "second"]
        assert Form.schema().get("first").parse is None

    def test_class_values_become_defaults(self):
        class Form(FormObject):
            country: str = "US"
            tags: list = list

        form = Form()
        assert form.country == "US"
        assert form.tags == []
        assert "country" not in Form.__dict__

    def test_private_and_classvar_annotations_are_skipped(self):
        class Form(FormObject):
            _cache: dict
            registry: ClassVar[dict] = {}
            name: str

        assert Form.get_attribute_names() == ["name"]
        assert Form.registry == {}

    def test_annotated_metadata(self):
        class Form(FormObject):
            age: Annotated[int, "years", validates(presence=True)]

        assert Form.get_attribute_metadata("age") == ("years",)
        assert [rule.kind for rule in Form.schema().get("age").rules] == ["presence"]

    def test_bad_declaration_fails_at_class_creation(self):
        with pytest.raises(SchemaError):

            class Form(FormObject):
                phone: Annotated[str, parse("telephone")]

    def test_attribute_cannot_shadow_form_api(self):
        with pytest.raises(SchemaError, match="clashes"):

            class Form(FormObject):
                errors: str

    def test_schema_is_shared_between_instances(self):
        class Form(FormObject):
            name: str

        assert Form(name="a").schema() is Form(name="b").schema()

    def test_attributes_are_read_from_the_built_class(self):
        namespace = {"__annotations__": {"name": str, "country": str}, "country": "US"}
        Form = FormMeta("Form", (FormObject,), namespace)

        assert Form.get_attribute_names() == ["name", "country"]
        assert Form().country == "US"
        assert "country" not in Form.__dict__
