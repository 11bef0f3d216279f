"""
Store contract types: attribute updates and write conditions.

Conditions are plain data evaluated against an item mapping, so every store
client applies them the same way. An absent item evaluates as an empty dict.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class Action(str, Enum):
    """What an attribute update does to its column."""

    PUT = "PUT"
    DELETE = "DELETE"
    PUT_IF_ABSENT = "PUT_IF_ABSENT"


@dataclass(frozen=True)
class AttributeUpdate:
    """A single column change inside update_item()."""

    action: Action
    value: Any = None

    @classmethod
    def put(cls, value: Any) -> "AttributeUpdate":
        return cls(Action.PUT, value)

    @classmethod
    def delete(cls) -> "AttributeUpdate":
        return cls(Action.DELETE)

    @classmethod
    def put_if_absent(cls, value: Any) -> "AttributeUpdate":
        return cls(Action.PUT_IF_ABSENT, value)


def apply_updates(item: Mapping[str, Any], updates: Mapping[str, AttributeUpdate]) -> Dict[str, Any]:
    """Return a copy of item with the updates applied."""
    result = dict(item)
    for name, update in updates.items():
        if update.action is Action.PUT:
            result[name] = update.value
        elif update.action is Action.DELETE:
            result.pop(name, None)
        elif update.action is Action.PUT_IF_ABSENT:
            result.setdefault(name, update.value)
    return result


class Condition:
    """Base class for write preconditions."""

    def evaluate(self, item: Mapping[str, Any]) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class AttributeExists(Condition):
    name: str

    def evaluate(self, item: Mapping[str, Any]) -> bool:
        return self.name in item


@dataclass(frozen=True)
class AttributeNotExists(Condition):
    name: str

    def evaluate(self, item: Mapping[str, Any]) -> bool:
        return self.name not in item


@dataclass(frozen=True)
class AttributeEquals(Condition):
    name: str
    value: Any

    def evaluate(self, item: Mapping[str, Any]) -> bool:
        if self.name not in item:
            return False
        current = item[self.name]
        # Clients that decode responses hand back str where bytes were written
        if isinstance(current, bytes) and isinstance(self.value, str):
            current = current.decode("utf-8")
        elif isinstance(current, str) and isinstance(self.value, bytes):
            current = current.encode("utf-8")
        return current == self.value


@dataclass(frozen=True)
class AttributeLessThan(Condition):
    """Numeric comparison; stored values are string-encoded numbers."""

    name: str
    value: float

    def evaluate(self, item: Mapping[str, Any]) -> bool:
        if self.name not in item:
            return False
        current = item[self.name]
        if isinstance(current, bytes):
            current = current.decode("utf-8")
        try:
            return float(current) < self.value
        except (TypeError, ValueError):
            return False


@dataclass(frozen=True)
class AnyOf(Condition):
    conditions: Tuple[Condition, ...]

    def __init__(self, *conditions: Condition):
        object.__setattr__(self, "conditions", tuple(conditions))

    def evaluate(self, item: Mapping[str, Any]) -> bool:
        return any(c.evaluate(item) for c in self.conditions)


@dataclass(frozen=True)
class AllOf(Condition):
    conditions: Tuple[Condition, ...]

    def __init__(self, *conditions: Condition):
        object.__setattr__(self, "conditions", tuple(conditions))

    def evaluate(self, item: Mapping[str, Any]) -> bool:
        return all(c.evaluate(item) for c in self.conditions)


def combine(*conditions: Optional[Condition]) -> Optional[Condition]:
    """AND together the given conditions, skipping None."""
    present = [c for c in conditions if c is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return AllOf(*present)
