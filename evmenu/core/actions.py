"""Resolve target actions to callable contract functions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Union

from ..errors import ConstructionError
from ..logbook import SessionLogger, get_logger
from .records import as_text
from .registry import ContractRegistry, Fragment


class InstanceLookup(Protocol):
    def instance(self, name_or_address: str) -> Any: ...


@dataclass(frozen=True)
class Action:
    """A function fragment bound to the contract instance it will run on."""

    instance: Any
    fragment: Fragment

    @property
    def function_name(self) -> str:
        return self.fragment.name

    @property
    def accepts_menu_response(self) -> bool:
        return is_menu_response(self.fragment)

    def __str__(self) -> str:
        return f"{self.instance.info.name} :: {self.fragment.format()}"


def _param_type(param: Dict[str, Any]) -> str:
    return str(param.get("type", ""))


def is_menu_response(fragment: Union[Fragment, Dict[str, Any]]) -> bool:
    """Return ``True`` for functions shaped ``f(bytes32, (string,string)[], ...)``.

    The first parameter carries the correlation token and the second the
    operator's key/value responses.
    """

    abi = fragment.abi if isinstance(fragment, Fragment) else fragment
    inputs = list(abi.get("inputs", []))
    if len(inputs) < 2 or _param_type(inputs[0]) != "bytes32":
        return False
    responses = inputs[1]
    if _param_type(responses) != "tuple[]":
        return False
    components = list(responses.get("components", []))
    return len(components) == 2 and all(_param_type(item) == "string" for item in components)


class ActionResolver:
    """Build :class:`Action` objects from ``Target_Action`` arguments.

    ``instances`` resolves contract names and addresses to deployed instances
    (normally the session :class:`~evmenu.core.engine.Client`).
    """

    def __init__(
        self,
        registry: ContractRegistry,
        instances: InstanceLookup,
        *,
        logger: Optional[SessionLogger] = None,
    ) -> None:
        self.registry = registry
        self.instances = instances
        self._logger = logger

    @property
    def logger(self) -> SessionLogger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    def resolve(self, default_instance: Any, *args: Any) -> Action:
        if not args:
            raise ConstructionError("Action requires a selector argument")
        if len(args) > 2:
            raise ConstructionError(f"Action accepts at most 2 arguments, got {len(args)}: {args!r}")
        token = as_text(args[0], "action selector")
        info, fragment = self.registry.lookup_function(token)
        instance = default_instance
        if len(args) > 1:
            instance = self.instances.instance(as_text(args[1], "action contract"))
        if instance.info.get_function(fragment.signature) is None:
            self.logger.diagnostic(
                "ACTION",
                "fragment_not_on_instance",
                selector=token,
                defined_by=info.name,
                instance=instance.info.name,
            )
        self.logger.log("ACTION", "resolve", selector=token, target=f"{instance.info.name}.{fragment.signature}")
        return Action(instance, fragment)


__all__ = ["Action", "ActionResolver", "is_menu_response"]
