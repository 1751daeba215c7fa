import inspect
import logging
from enum import Enum
from types import MappingProxyType, MethodType
from typing import (
    Annotated,
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    cast,
    get_args,
    get_origin,
    get_type_hints,
)

from .config import Configuration, get_config
from .errors import ErrorSet, ParseError, SchemaError, StateError
from .formatters import FORMATTERS
from .parsers import PARSERS
from .rules import RuleEngine
from .schema import AttributeSchema, SchemaBuilder

logger = logging.getLogger(__name__)


# --- Callback Decorators ---
def before_validation(func: Callable) -> Callable:
    """Decorator to run a method after parsing and before the rules are checked."""
    if not callable(func):
        raise TypeError("before_validation can only decorate callables.")
    setattr(func, "_validation_callback", "before")
    return func


def after_validation(func: Callable) -> Callable:
    """Decorator to run a method after the rules are checked."""
    if not callable(func):
        raise TypeError("after_validation can only decorate callables.")
    setattr(func, "_validation_callback", "after")
    return func


class FormState(Enum):
    UNVALIDATED = "unvalidated"
    VALIDATED = "validated"
    REFORMATTED = "reformatted"


# --- Metaclass ---
class FormMeta(type):
    """Builds the immutable attribute schema of each form class.

    Public annotated names become attributes. ``Annotated`` metadata supplies
    their parse/reformat/validates markers and class-level values become
    defaults. Methods marked with ``@before_validation`` or
    ``@after_validation`` are appended to the inherited callbacks in
    class-body order.
    """

    def __new__(mcls, name: str, bases: tuple, namespace: dict) -> Any:
        builder = SchemaBuilder()
        for base in bases:
            if isinstance(getattr(base, "_schema", None), AttributeSchema):
                builder.extend(getattr(base, "_schema"))

        cls = super().__new__(mcls, name, bases, namespace)
        cls_any = cast(Any, cls)

        # Read from the class, not the namespace, which holds only __annotate__ on 3.14+
        annotations = inspect.get_annotations(cls)
        own_fields = [
            field_name
            for field_name, hint in annotations.items()
            if not field_name.startswith("_") and not _is_classvar(hint)
        ]

        for field_name in own_fields:
            for base in bases:
                inherited = getattr(base, "_schema", None)
                known = inherited is not None and field_name in inherited
                if not known and hasattr(base, field_name):
                    raise SchemaError(
                        f"Attribute '{field_name}' clashes with {base.__name__}.{field_name}"
                    )

        defaults: Dict[str, Any] = {}
        for field_name in own_fields:
            if field_name in namespace:
                defaults[field_name] = namespace[field_name]
                delattr(cls, field_name)

        for value in namespace.values():
            marker = getattr(value, "_validation_callback", None)
            if marker == "before":
                builder.before_validation(value)
            elif marker == "after":
                builder.after_validation(value)

        # Use include_extras=True to keep the Annotated markers
        hints = get_type_hints(cls, include_extras=True) if own_fields else {}
        for field_name in own_fields:
            markers: Tuple[Any, ...] = ()
            hint = hints.get(field_name)
            if get_origin(hint) is Annotated:
                markers = get_args(hint)[1:]
            builder.attribute(field_name, *markers, default=defaults.get(field_name))

        cls_any._schema = builder.build()
        return cls


def _is_classvar(hint: Any) -> bool:
    if isinstance(hint, str):
        return hint.startswith(("ClassVar", "typing.ClassVar"))
    return hint is ClassVar or get_origin(hint) is ClassVar


# --- Main FormObject Class ---
class FormObject(metaclass=FormMeta):
    """Base class for declarative form objects.

    Example:
        class SignupForm(FormObject):
            email: Annotated[str, parse("strip_whitespace"), validates(presence=True)]
            phone: Annotated[
                str,
                parse("phone_number"),
                reformat("phone_number", country_code="US"),
            ]

        form = SignupForm({"email": " joe@example.com ", "phone": "312-555-1212"})
        if form.validate():
            form.reformatted()
    """

    _schema: ClassVar[AttributeSchema] = AttributeSchema()
    rule_engine: ClassVar[RuleEngine] = RuleEngine()

    def __init__(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        config: Optional[Configuration] = None,
        **kwargs: Any,
    ) -> None:
        """Copy the declared attributes out of ``attributes`` and ``kwargs``."""
        data: Dict[str, Any] = dict(attributes or {})
        data.update(kwargs)

        super().__setattr__("_attributes", {})
        self._config = config
        self._errors = ErrorSet()
        self._validated = False
        self._state = FormState.UNVALIDATED
        self._parse_failures: Set[str] = set()

        for definition in self._schema.attributes:
            if definition.name in data:
                value = data[definition.name]
            else:
                default = definition.default
                value = default() if callable(default) else default
            self._attributes[definition.name] = value

        ignored = [key for key in data if key not in self._schema]
        if ignored:
            logger.debug(
                "%s ignored undeclared attribute(s): %s",
                self.__class__.__name__,
                ", ".join(map(str, ignored)),
            )

    # --- Attribute Access ---
    def __getattr__(self, name: str) -> Any:
        attributes = self.__dict__.get("_attributes")
        if attributes is not None and name in attributes:
            return attributes[name]
        raise AttributeError(
            f"'{self.__class__.__name__}' object has no attribute '{name}'"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        """Route declared attribute names to the attribute bag."""
        if name in self._schema:
            self._attributes[name] = value
        else:
            super().__setattr__(name, value)

    @property
    def config(self) -> Configuration:
        return self._config if self._config is not None else get_config()

    @property
    def errors(self) -> ErrorSet:
        return self._errors

    @property
    def validated(self) -> bool:
        return self._validated

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def attributes(self) -> Mapping[str, Any]:
        """Read-only view of the current attribute values."""
        return MappingProxyType(self._attributes)

    # --- Pipeline ---
    def validate(self) -> bool:
        """Parse, run callbacks and rules, and return True when there are no errors."""
        if self._state is FormState.REFORMATTED:
            raise StateError(
                f"{self.__class__.__name__} holds display values after reformatted(); "
                "build a new form from the submitted params to validate again"
            )
        self._errors.clear()
        self._parse_failures = set()

        self._parse_attributes()
        self._run_callbacks(self._schema.before_validation)
        self.rule_engine.evaluate(
            self._attributes, self._schema, self._errors, skip=self._parse_failures
        )
        self._run_callbacks(self._schema.after_validation)

        self._validated = True
        self._state = FormState.VALIDATED
        logger.debug(
            "%s validated with %d error(s)", self.__class__.__name__, len(self._errors)
        )
        return self._errors.empty

    def valid(self) -> bool:
        """Run the pipeline and report validity.

        After ``reformatted()`` the result of the last run is reused.
        """
        if self._state is FormState.REFORMATTED:
            return self._errors.empty
        return self.validate()

    def invalid(self) -> bool:
        return not self.valid()

    def reformatted(self) -> None:
        """Replace canonical values with display strings, in declaration order.

        Attributes that are ``None`` or failed to parse keep their value.
        """
        if self._state is FormState.UNVALIDATED:
            raise StateError(
                f"{self.__class__.__name__}.reformatted() called before validate()"
            )
        if self._state is FormState.REFORMATTED:
            raise StateError(f"{self.__class__.__name__} has already been reformatted")

        # Nothing is written back unless every formatter succeeds
        display: Dict[str, Any] = {}
        for definition in self._schema.attributes:
            spec = definition.reformat
            if spec is None or definition.name in self._parse_failures:
                continue
            value = self._attributes[definition.name]
            if value is None:
                continue
            formatter = FORMATTERS[spec.kind]
            display[definition.name] = formatter(value, config=self.config, **spec.options)

        self._attributes.update(display)
        self._state = FormState.REFORMATTED
        logger.debug("%s reformatted for display", self.__class__.__name__)

    def _parse_attributes(self) -> None:
        parsed: Dict[str, Any] = {}
        for definition in self._schema.attributes:
            spec = definition.parse
            if spec is None:
                continue
            value = self._attributes[definition.name]
            if value is None:
                continue
            parser = PARSERS[spec.kind]
            try:
                parsed[definition.name] = parser(
                    value, config=self.config, **spec.options
                )
            except ParseError as exc:
                self._parse_failures.add(definition.name)
                self._errors.add(definition.name, exc.message, "invalid")
                logger.debug(
                    "%s.%s failed to parse as %s: %s",
                    self.__class__.__name__,
                    definition.name,
                    spec.kind.value,
                    exc.message,
                )
        self._attributes.update(parsed)

    def _run_callbacks(self, handlers: Tuple[Callable, ...]) -> None:
        for handler in handlers:
            MethodType(handler, self)()

    # --- Serialization ---
    def to_params(self, compact: bool = False) -> Dict[str, Any]:
        """Snapshot of every declared attribute in declaration order.

        With ``compact=True`` attributes whose value is None are left out.
        """
        if compact:
            return {k: v for k, v in self._attributes.items() if v is not None}
        return dict(self._attributes)

    # --- Schema Access ---
    @classmethod
    def schema(cls) -> AttributeSchema:
        return cls._schema

    @classmethod
    def get_attribute_names(cls) -> List[str]:
        """Get list of all declared attribute names for this form."""
        return cls._schema.names()

    @classmethod
    def get_attribute_metadata(cls, name: str) -> tuple:
        """Get the non-pipeline ``Annotated`` metadata of an attribute."""
        return cls._schema.get(name).metadata

    # --- String Representation ---
    def __repr__(self) -> str:
        fields_str = ", ".join(f"{k}={v!r}" for k, v in self._attributes.items())
        return f"{self.__class__.__name__}({fields_str})"
