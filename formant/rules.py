"""Validation rules and the engine that evaluates them.

Rules are plain functions registered by name. Each receives the canonical
value and its options and returns ``None`` when the value passes, or a
``(code, message)`` pair when it fails.

Example:
    @register_rule("postal_code", options=("country",))
    def postal_code(value, options):
        if value is not None and not POSTAL.match(value):
            return "invalid", options.get("message", "is not a postal code")
        return None
"""

import re
from collections.abc import Sized
from typing import Any, Callable, Collection, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .errors import ErrorSet, SchemaError

RuleResult = Optional[Tuple[str, str]]
RuleFunction = Callable[[Any, Dict[str, Any]], RuleResult]

_RULES: Dict[str, RuleFunction] = {}
_RULE_OPTIONS: Dict[str, FrozenSet[str]] = {}


def register_rule(name: str, options: Iterable[str] = ()) -> Callable[[RuleFunction], RuleFunction]:
    """Decorator registering a rule under ``name``.

    ``options`` lists the option keys the rule understands; ``message`` is
    always accepted. Re-registering an existing name is a no-op.
    """

    def decorator(func: RuleFunction) -> RuleFunction:
        if name not in _RULES:
            _RULES[name] = func
            _RULE_OPTIONS[name] = frozenset(options) | {"message"}
        return func

    return decorator


def get_rule(name: str) -> RuleFunction:
    if name not in _RULES:
        raise SchemaError(
            f"Validation rule '{name}' is not registered. "
            f"Available rules: {', '.join(registered_rules())}"
        )
    return _RULES[name]


def rule_options(name: str) -> FrozenSet[str]:
    get_rule(name)
    return _RULE_OPTIONS[name]


def is_registered(name: str) -> bool:
    return name in _RULES


def registered_rules() -> List[str]:
    return sorted(_RULES)


def is_blank(value: Any) -> bool:
    """True for ``None``, whitespace-only strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Sized):
        return len(value) == 0
    return False


# --- Built-in rules ---
@register_rule("presence")
def presence(value: Any, options: Dict[str, Any]) -> RuleResult:
    if is_blank(value):
        return "blank", options.get("message", "can't be blank")
    return None


@register_rule("length", options=("minimum", "maximum", "is"))
def length(value: Any, options: Dict[str, Any]) -> RuleResult:
    if value is None:
        return None
    size = len(value) if isinstance(value, Sized) else len(str(value))
    if "is" in options and size != options["is"]:
        return "wrong_length", options.get(
            "message", f"is the wrong length (should be {options['is']} characters)"
        )
    if "minimum" in options and size < options["minimum"]:
        return "too_short", options.get(
            "message", f"is too short (minimum is {options['minimum']} characters)"
        )
    if "maximum" in options and size > options["maximum"]:
        return "too_long", options.get(
            "message", f"is too long (maximum is {options['maximum']} characters)"
        )
    return None


@register_rule("format", options=("with", "without"))
def format_(value: Any, options: Dict[str, Any]) -> RuleResult:
    if value is None:
        return None
    text = str(value)
    if "with" in options and not re.search(options["with"], text):
        return "invalid", options.get("message", "is invalid")
    if "without" in options and re.search(options["without"], text):
        return "invalid", options.get("message", "is invalid")
    return None


@register_rule("inclusion", options=("in",))
def inclusion(value: Any, options: Dict[str, Any]) -> RuleResult:
    if value is None:
        return None
    if value not in options.get("in", ()):
        return "inclusion", options.get("message", "is not included in the list")
    return None


class RuleEngine:
    """Evaluates the declared rules of a schema against an attribute bag."""

    def evaluate(
        self,
        bag: Dict[str, Any],
        schema: Any,
        errors: ErrorSet,
        skip: Collection[str] = (),
    ) -> ErrorSet:
        """Append rule failures to ``errors`` in declaration order.

        Attributes named in ``skip`` (typically those that failed to parse)
        are not checked.
        """
        for definition in schema.attributes:
            if definition.name in skip:
                continue
            value = bag.get(definition.name)
            for rule in definition.rules:
                failure = get_rule(rule.kind)(value, dict(rule.options))
                if failure is not None:
                    code, message = failure
                    errors.add(definition.name, message, code)
        return errors
