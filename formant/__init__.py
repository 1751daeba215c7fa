"""
Formant - declarative form objects for Python

Raw form input goes through a parse -> validate -> reformat pipeline declared
per attribute: parsers normalize input into canonical values, rules validate
them, and formatters render them back for display.

Example:
    from typing import Annotated
    from formant import FormObject, parse, reformat, validates, before_validation

    class MeetingForm(FormObject):
        name: Annotated[str, parse("strip_whitespace", squish=True), validates(presence=True)]
        phone: Annotated[
            str,
            parse("phone_number"),
            reformat("phone_number", country_code="US"),
            validates(presence=True),
        ]
        starts_at: Annotated[
            str,
            parse("datetime"),
            reformat("datetime", format="day_date_time", locale="en"),
        ]
        price: Annotated[str, parse("currency"), reformat("currency")]

        @before_validation
        def title_case_name(self):
            if self.name:
                self.name = self.name.title()

    form = MeetingForm({"name": "Joe   Bob ", "phone": "312-555-1212"})
    form.validate()       # True; form.phone == "+13125551212"
    form.reformatted()    # form.phone == "(312) 555-1212"
"""

__version__ = "0.3.0"
__author__ = "Formant Contributors"
__license__ = "MIT"

from .config import Configuration, configure, get_config, reset_config, set_config
from .core import FormMeta, FormObject, FormState, after_validation, before_validation
from .errors import (
    ConfigurationError,
    ErrorSet,
    FormantError,
    FormatError,
    ParseError,
    SchemaError,
    StateError,
)
from .formatters import FormatterKind
from .parsers import ParserKind
from .rules import RuleEngine, register_rule
from .schema import (
    AttributeDefinition,
    AttributeSchema,
    SchemaBuilder,
    parse,
    reformat,
    validates,
)

__all__ = [
    "FormObject",
    "FormMeta",
    "FormState",
    "before_validation",
    "after_validation",
    "parse",
    "reformat",
    "validates",
    "AttributeDefinition",
    "AttributeSchema",
    "SchemaBuilder",
    "ParserKind",
    "FormatterKind",
    "RuleEngine",
    "register_rule",
    "Configuration",
    "configure",
    "get_config",
    "set_config",
    "reset_config",
    "ErrorSet",
    "FormantError",
    "ParseError",
    "FormatError",
    "StateError",
    "SchemaError",
    "ConfigurationError",
]
