"""Box-drawn rendering of menu screens on a Rich console."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.text import Text

from ..core.graph import Menu
from ..core.records import Field, describe

FRAME_STYLE = "#00B7FF"
TITLE_STYLE = "bold #7DF9FF"
BUTTON_STYLE = "bold #39FF14"
NOTE_STYLE = "#7DF9FF"
DIAGNOSTIC_STYLE = "dim yellow"
RULE_WIDTH = 40


class MenuRenderer:
    """Draw session headers and menu screens.

    Output is decoration for the operator only and is not meant to be parsed.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def _line(self, text: str, style: str = FRAME_STYLE) -> None:
        self.console.print(Text(text, style=style), highlight=False)

    # ------------------------------------------------------------------
    # Session framing
    # ------------------------------------------------------------------
    def header(self, name: str, address: str, signature: str, token: bytes, args: Sequence[Any]) -> None:
        self._line("╭" + "╶" * RULE_WIDTH)
        self._line(f"│ {name} ({address})", TITLE_STYLE)
        self._line(f"│ {signature}")
        self._line(f"│  - 0x{token.hex()}")
        for arg in args:
            self._line(f"│  - {json.dumps(arg, default=describe, ensure_ascii=False)}")
        self._line("├" + "╴" * RULE_WIDTH)

    def footer(self, message: str) -> None:
        self._line(f"│ {message}")

    # ------------------------------------------------------------------
    # Menus
    # ------------------------------------------------------------------
    def button(self, label: str) -> None:
        top = "┈" * (len(label) + 2)
        blank = " " * (len(label) + 2)
        self._line(f"│  ╭{top}╮")
        self.console.print(
            Text.assemble(("│  ┊ ", FRAME_STYLE), (label, BUTTON_STYLE), (" ┊", FRAME_STYLE)),
            highlight=False,
        )
        self._line(f"│  ┊{blank}╰╌╌┄╌┄┄╌┄┄")

    def menu(self, menu: Menu) -> None:
        for item in menu.items:
            if not item:
                continue
            key, values = str(item[0]), item[1:]
            kind = Field.parse(key)
            if kind in (Field.TITLE, Field.TEXT) and not values:
                self._line("│")
            elif kind is Field.TITLE:
                self._line("│")
                self._line(f"│ ░ {describe(values[0])} ░", TITLE_STYLE)
                self._line("│")
            elif kind is Field.TARGET:
                self._target(menu, describe(values[0]) if values else "")
            elif kind is Field.TEXT:
                self._line("│  " + " ".join(describe(value) for value in values), "default")
            elif kind is Field.ID:
                continue
            else:
                self._line(f"   {key} {[describe(value) for value in values]}", DIAGNOSTIC_STYLE)
        self._line("╵")

    def _target(self, menu: Menu, target_id: str) -> None:
        target = menu.targets.get(target_id)
        self._line("│")
        if target is None:
            self.button(target_id)
        else:
            self.button(target.label)
            if target.note:
                for note in target.note:
                    self._line(f"│  ┊ {note}", NOTE_STYLE)
                self._line("│  ┊ ")
            if target.action is not None:
                self._line(f"│  ┊ > {target.action}", NOTE_STYLE)
        self._line("│  ╰╌╌┄╌┄┄╌┄┄")


__all__ = ["MenuRenderer"]
