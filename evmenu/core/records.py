"""Typed view over decoded contract log records.

Decoded event arguments arrive as whatever eth-abi produced for the event's
ABI types: ``str``, ``bool``, ``int``, ``bytes`` or nested tuples. Menu and
target records only make sense for a few of those shapes, so the helpers here
check the shape at the point a field is consumed and raise
:class:`~evmenu.errors.ConstructionError` on mismatch.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from ..errors import ConstructionError


class RecordKind(str, Enum):
    """Prefix of a menu event name."""

    MENU = "Menu"
    TARGET = "Target"


class Field(str, Enum):
    """Suffix of a menu event name."""

    TITLE = "Title"
    TEXT = "Text"
    ID = "Id"
    NOTE = "Note"
    BUTTON = "Button"
    ACTION = "Action"
    TARGET = "Target"
    MENU = "Menu"

    @classmethod
    def parse(cls, raw: str) -> Optional["Field"]:
        try:
            return cls(raw)
        except ValueError:
            return None


@dataclass(frozen=True)
class LogRecord:
    """One decoded event: ``(origin, name, args)``.

    ``origin`` is the contract instance that emitted the event.
    """

    origin: Any
    name: str
    args: Tuple[Any, ...] = ()

    def split_name(self) -> Optional[Tuple[str, str]]:
        """Return ``(kind, subkind)`` or ``None`` when the name has no ``_``."""

        if "_" not in self.name:
            return None
        kind, subkind = self.name.split("_", 1)
        return kind, subkind

    @property
    def kind(self) -> Optional[RecordKind]:
        parts = self.split_name()
        if parts is None:
            return None
        try:
            return RecordKind(parts[0])
        except ValueError:
            return None

    @property
    def subkind(self) -> str:
        parts = self.split_name()
        return parts[1] if parts else ""


def as_text(value: Any, what: str = "value") -> str:
    """Return ``value`` as text, accepting strings and raw bytes.

    Bytes (``bytes32`` identifiers for instance) are rendered as ``0x`` hex so
    the same identifier always maps to the same key.
    """

    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    raise ConstructionError(f"Expected text for {what}, got {type(value).__name__}: {value!r}")


def as_menu_id(value: Any) -> str:
    menu_id = as_text(value, "menu id")
    if not menu_id:
        raise ConstructionError("Menu id must not be empty")
    return menu_id


def as_target_key(value: Any) -> Tuple[str, str]:
    """Return the ``(menuId, targetId)`` pair carried by ``Target_*`` records."""

    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ConstructionError(f"Target key must be a (menu, id) pair, got {value!r}")
    return as_menu_id(value[0]), as_text(value[1], "target id")


def describe(value: Any) -> str:
    """Human readable rendering of a decoded value."""

    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return json.dumps([describe(item) for item in value], ensure_ascii=False)
    return str(value)


__all__ = [
    "Field",
    "LogRecord",
    "RecordKind",
    "as_menu_id",
    "as_target_key",
    "as_text",
    "describe",
]
