"""Walk a menu graph and let the operator pick a target."""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from prompt_toolkit.shortcuts import radiolist_dialog

from ..core.graph import Menu, MenuGraph, Target
from ..core.records import Field, describe
from ..logbook import SessionLogger, get_logger
from .terminal import MenuRenderer

Choice = Tuple[str, str]
Chooser = Callable[[Menu, List[Choice]], Optional[str]]


def _menu_title(menu: Menu) -> str:
    for item in menu.items:
        if item and item[0] == Field.TITLE.value and len(item) > 1:
            return describe(item[1])
    return menu.id


def prompt_choice(menu: Menu, choices: List[Choice]) -> Optional[str]:
    """Single-select dialog; ``None`` when the operator cancels."""

    return radiolist_dialog(
        title=_menu_title(menu),
        text="Pick an option",
        values=choices,
    ).run()


class Navigator:
    """Render menus in graph order and return the first chosen target."""

    def __init__(
        self,
        renderer: Optional[MenuRenderer] = None,
        chooser: Optional[Chooser] = None,
        *,
        logger: Optional[SessionLogger] = None,
    ) -> None:
        self.renderer = renderer or MenuRenderer()
        self.chooser = chooser or prompt_choice
        self._logger = logger

    @property
    def logger(self) -> SessionLogger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    def navigate(self, graph: MenuGraph) -> Optional[Target]:
        for menu_id, menu in graph.items():
            self.renderer.menu(menu)
            if not menu.targets:
                self.logger.log("NAVIGATOR", "no_targets", status="skipped", menu=menu_id)
                continue
            choices = [(target_id, target.label) for target_id, target in menu.targets.items()]
            option = self.chooser(menu, choices)
            self.renderer.console.print()
            if option and option in menu.targets:
                self.logger.log("NAVIGATOR", "choose", menu=menu_id, target=option)
                return menu.targets[option]
            self.logger.log("NAVIGATOR", "choose", status="cancelled", menu=menu_id)
        return None


__all__ = ["Navigator", "prompt_choice"]
