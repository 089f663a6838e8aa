"""The session loop tying queries, graph building and navigation together."""

from __future__ import annotations

import secrets
from enum import Enum
from typing import Any, Callable, List, Optional

from .core.actions import ActionResolver
from .core.engine import Client
from .core.graph import MenuGraphBuilder
from .errors import ConstructionError
from .logbook import SessionLogger, get_logger
from .ui.navigator import Navigator
from .ui.terminal import MenuRenderer


class DriverState(str, Enum):
    AWAITING_QUERY = "awaiting_query"
    HAS_GRAPH = "has_graph"
    AWAITING_CHOICE = "awaiting_choice"
    HAS_ACTION = "has_action"
    TERMINATED = "terminated"


def random32() -> bytes:
    """Fresh correlation token for one menu query."""

    return secrets.token_bytes(32)


class Driver:
    """Query, render, choose and follow actions until no target is picked.

    The session head is a ``(contract instance, function)`` pair. Each loop
    calls the head with a new correlation token, rebuilds the menu graph from
    the emitted events and moves the head to the chosen target's action.
    """

    def __init__(
        self,
        client: Client,
        *,
        navigator: Optional[Navigator] = None,
        renderer: Optional[MenuRenderer] = None,
        token_factory: Callable[[], bytes] = random32,
        logger: Optional[SessionLogger] = None,
    ) -> None:
        self.client = client
        self._logger = logger
        self.renderer = renderer or (navigator.renderer if navigator else MenuRenderer())
        self.navigator = navigator or Navigator(self.renderer, logger=logger)
        self.resolver = ActionResolver(client.registry, client, logger=logger)
        self.builder = MenuGraphBuilder(self.resolver, logger=logger)
        self.token_factory = token_factory
        self.state = DriverState.AWAITING_QUERY
        self.steps = 0

    @property
    def logger(self) -> SessionLogger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    def _enter(self, state: DriverState) -> None:
        self.state = state
        self.logger.log("DRIVER", "state", state=state.value, step=self.steps)

    def run(self, contract: str, fname: str, *args: Any) -> int:
        """Drive the session starting at ``contract.fname``; return the number of queries."""

        instance = self.client.instance(contract)
        carried: List[Any] = list(args)
        while True:
            self._enter(DriverState.AWAITING_QUERY)
            token = self.token_factory()
            result = instance.query(fname, token, *carried)
            self.steps += 1

            graph = self.builder.build(result.logs, instance)
            self._enter(DriverState.HAS_GRAPH)
            fragment = instance.function(fname)
            self.renderer.header(instance.info.name, instance.address, fragment.format(), token, carried)

            self._enter(DriverState.AWAITING_CHOICE)
            target = self.navigator.navigate(graph)
            if target is None:
                self.renderer.footer("No target!")
                self._enter(DriverState.TERMINATED)
                return self.steps

            action = target.action
            if action is None:
                raise ConstructionError(f"Target has no action: {target.menu}/{target.id}")
            self._enter(DriverState.HAS_ACTION)
            instance = action.instance
            fname = action.fragment.signature
            carried = [[]] if action.accepts_menu_response else []
            self.logger.log("DRIVER", "follow", target=target.id, fragment=str(action), args=carried)


__all__ = ["Driver", "DriverState", "random32"]
