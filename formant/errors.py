"""Exception taxonomy and the per-form error collection."""

from typing import Any, Dict, Iterator, List, Optional, Tuple


class FormantError(Exception):
    """Base class for all formant errors."""


class ParseError(FormantError, ValueError):
    """Raised by a parser when a raw value has no canonical form.

    The pipeline catches it and records the message against the attribute;
    it never escapes ``FormObject.validate``.
    """

    def __init__(self, message: str, value: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.value = value


class FormatError(FormantError, ValueError):
    """Raised by a formatter that cannot render a value."""


class StateError(FormantError, RuntimeError):
    """Raised when a form object is driven through an invalid lifecycle step."""


class SchemaError(StateError, TypeError):
    """Raised while a form class is being declared with a bad declaration."""


class ConfigurationError(FormantError):
    """Raised for an unknown time zone, locale or format name."""


def humanize(name: str) -> str:
    """Turn an attribute name into a label: ``first_name`` -> ``First name``."""
    text = name.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


class ErrorSet:
    """Ordered mapping of attribute name to error messages.

    An empty set means the form is valid.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, List[Tuple[str, str]]] = {}

    def add(self, attribute: str, message: str, code: str = "invalid") -> None:
        """Record an error for an attribute."""
        self._entries.setdefault(attribute, []).append((code, message))

    def clear(self) -> None:
        self._entries.clear()

    @property
    def empty(self) -> bool:
        return not self._entries

    def attributes(self) -> List[str]:
        """Names of the attributes that have at least one error."""
        return list(self._entries)

    def details(self, attribute: str) -> List[Dict[str, str]]:
        """Machine-readable error codes for an attribute."""
        return [{"error": code} for code, _ in self._entries.get(attribute, [])]

    def full_messages(self) -> List[str]:
        return [
            f"{humanize(attribute)} {message}"
            for attribute, entries in self._entries.items()
            for _, message in entries
        ]

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            attribute: [message for _, message in entries]
            for attribute, entries in self._entries.items()
        }

    def get(self, attribute: str, default: Optional[List[str]] = None) -> Optional[List[str]]:
        if attribute not in self._entries:
            return default
        return self[attribute]

    # --- Container protocol ---
    def __getitem__(self, attribute: str) -> List[str]:
        return [message for _, message in self._entries.get(attribute, [])]

    def __contains__(self, attribute: object) -> bool:
        return attribute in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorSet):
            return self._entries == other._entries
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ErrorSet({self.to_dict()!r})"
