"""Attribute schema: the immutable declaration shared by every form instance.

A schema is normally built by the :class:`~formant.core.FormObject`
metaclass from ``Annotated`` hints, but it can also be assembled directly:

    schema = (
        SchemaBuilder()
        .attribute("phone", parse("phone_number"), validates(presence=True))
        .reformat("phone", "phone_number", country_code="US")
        .build()
    )
"""

import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from dateutil import tz

from .errors import SchemaError
from .formatters import FORMATTERS, FormatterKind
from .parsers import PARSERS, ParserKind
from .rules import rule_options

Handler = Callable[[Any], Any]


def _frozen(options: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(options))


def _check_options(func: Callable[..., Any], options: Mapping[str, Any], label: str) -> None:
    accepted = {
        name
        for name, param in inspect.signature(func).parameters.items()
        if param.kind is inspect.Parameter.KEYWORD_ONLY and name != "config"
    }
    unknown = sorted(set(options) - accepted)
    if unknown:
        raise SchemaError(
            f"Unknown option(s) for {label}: {', '.join(unknown)}. "
            f"Accepted options: {', '.join(sorted(accepted)) or 'none'}."
        )


def _check_time_zone(options: Mapping[str, Any], label: str) -> None:
    time_zone = options.get("time_zone")
    if time_zone is not None and tz.gettz(time_zone) is None:
        raise SchemaError(f"Unknown time zone '{time_zone}' for {label}")


@dataclass(frozen=True)
class ParseSpec:
    kind: ParserKind
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", _frozen(self.options))


@dataclass(frozen=True)
class ReformatSpec:
    kind: FormatterKind
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", _frozen(self.options))


@dataclass(frozen=True)
class RuleSpec:
    kind: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", _frozen(self.options))


@dataclass(frozen=True)
class Validates:
    """Marker holding the rules declared for one attribute."""

    rules: Tuple[RuleSpec, ...] = ()


# --- Declaration helpers ---
def parse(kind: str, **options: Any) -> ParseSpec:
    """Declare the parser applied before validation."""
    try:
        parser_kind = ParserKind(kind)
    except ValueError:
        raise SchemaError(
            f"Unknown parser '{kind}'. "
            f"Available parsers: {', '.join(k.value for k in ParserKind)}"
        ) from None
    _check_options(PARSERS[parser_kind], options, f"parser '{parser_kind.value}'")
    _check_time_zone(options, f"parser '{parser_kind.value}'")
    return ParseSpec(parser_kind, options)


def reformat(kind: str, **options: Any) -> ReformatSpec:
    """Declare the formatter applied by ``FormObject.reformatted()``."""
    try:
        formatter_kind = FormatterKind(kind)
    except ValueError:
        raise SchemaError(
            f"Unknown formatter '{kind}'. "
            f"Available formatters: {', '.join(k.value for k in FormatterKind)}"
        ) from None
    _check_options(FORMATTERS[formatter_kind], options, f"formatter '{formatter_kind.value}'")
    _check_time_zone(options, f"formatter '{formatter_kind.value}'")
    return ReformatSpec(formatter_kind, options)


def validates(**rules: Any) -> Validates:
    """Declare validation rules, e.g. ``validates(presence=True, length={"maximum": 40})``."""
    specs: List[RuleSpec] = []
    for kind, options in rules.items():
        if options is False or options is None:
            continue
        if options is True:
            options = {}
        if not isinstance(options, Mapping):
            raise SchemaError(
                f"Options for rule '{kind}' must be True or a mapping, got {type(options).__name__}"
            )
        accepted = rule_options(kind)
        unknown = sorted(set(options) - accepted)
        if unknown:
            raise SchemaError(f"Unknown option(s) for rule '{kind}': {', '.join(unknown)}")
        specs.append(RuleSpec(kind, options))
    return Validates(tuple(specs))


# --- Schema ---
@dataclass(frozen=True)
class AttributeDefinition:
    name: str
    parse: Optional[ParseSpec] = None
    reformat: Optional[ReformatSpec] = None
    rules: Tuple[RuleSpec, ...] = ()
    default: Any = None
    metadata: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class AttributeSchema:
    """Ordered attribute definitions plus validation callbacks."""

    attributes: Tuple[AttributeDefinition, ...] = ()
    before_validation: Tuple[Handler, ...] = ()
    after_validation: Tuple[Handler, ...] = ()

    def names(self) -> List[str]:
        return [definition.name for definition in self.attributes]

    def get(self, name: str) -> AttributeDefinition:
        for definition in self.attributes:
            if definition.name == name:
                return definition
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(definition.name == name for definition in self.attributes)

    def __iter__(self) -> Iterator[AttributeDefinition]:
        return iter(self.attributes)

    def __len__(self) -> int:
        return len(self.attributes)


class SchemaBuilder:
    """Fluent interface for assembling an :class:`AttributeSchema`."""

    def __init__(self, base: Optional[AttributeSchema] = None) -> None:
        self._definitions: Dict[str, Dict[str, Any]] = {}
        self._before: List[Handler] = []
        self._after: List[Handler] = []
        if base is not None:
            self.extend(base)

    def extend(self, schema: AttributeSchema) -> "SchemaBuilder":
        """Copy another schema's attributes and callbacks into this builder."""
        for definition in schema.attributes:
            entry = self._entry(definition.name, create=True)
            if definition.parse is not None:
                entry["parse"] = definition.parse
            if definition.reformat is not None:
                entry["reformat"] = definition.reformat
            entry["rules"].extend(definition.rules)
            entry["metadata"].extend(definition.metadata)
            entry["default"] = definition.default
        for handler in schema.before_validation:
            if handler not in self._before:
                self._before.append(handler)
        for handler in schema.after_validation:
            if handler not in self._after:
                self._after.append(handler)
        return self

    def _entry(self, name: str, create: bool = False) -> Dict[str, Any]:
        if name not in self._definitions:
            if not create:
                raise SchemaError(f"Attribute '{name}' has not been declared")
            if not name.isidentifier() or name.startswith("_"):
                raise SchemaError(f"Invalid attribute name '{name}'")
            self._definitions[name] = {
                "parse": None,
                "reformat": None,
                "rules": [],
                "default": None,
                "metadata": [],
            }
        return self._definitions[name]

    def attribute(self, name: str, *markers: Any, default: Any = None) -> "SchemaBuilder":
        """Declare an attribute, applying any parse/reformat/validates markers.

        Markers of other types are kept as free-form metadata.
        """
        entry = self._entry(name, create=True)
        entry["default"] = default
        for marker in markers:
            if isinstance(marker, ParseSpec):
                entry["parse"] = marker
            elif isinstance(marker, ReformatSpec):
                entry["reformat"] = marker
            elif isinstance(marker, Validates):
                entry["rules"].extend(marker.rules)
            else:
                entry["metadata"].append(marker)
        return self

    def parse(self, name: str, kind: str, **options: Any) -> "SchemaBuilder":
        self._entry(name)["parse"] = parse(kind, **options)
        return self

    def reformat(self, name: str, kind: str, **options: Any) -> "SchemaBuilder":
        self._entry(name)["reformat"] = reformat(kind, **options)
        return self

    def validates(self, name: str, **rules: Any) -> "SchemaBuilder":
        self._entry(name)["rules"].extend(validates(**rules).rules)
        return self

    def before_validation(self, handler: Handler) -> "SchemaBuilder":
        if not callable(handler):
            raise SchemaError("before_validation handlers must be callable")
        self._before.append(handler)
        return self

    def after_validation(self, handler: Handler) -> "SchemaBuilder":
        if not callable(handler):
            raise SchemaError("after_validation handlers must be callable")
        self._after.append(handler)
        return self

    def build(self) -> AttributeSchema:
        """Freeze the declarations into an :class:`AttributeSchema`."""
        attributes = tuple(
            AttributeDefinition(
                name=name,
                parse=entry["parse"],
                reformat=entry["reformat"],
                rules=tuple(entry["rules"]),
                default=entry["default"],
                metadata=tuple(entry["metadata"]),
            )
            for name, entry in self._definitions.items()
        )
        return AttributeSchema(attributes, tuple(self._before), tuple(self._after))
