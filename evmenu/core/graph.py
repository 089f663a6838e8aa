"""Rebuild the menu graph encoded in a query's event logs.

A menu contract describes its screens by emitting ``Menu_<Field>`` events
keyed by a menu id and ``Target_<Field>`` events keyed by a ``(menu, target)``
pair. Records can arrive interleaved and out of order, so the builder first
accumulates raw ``(field, *values)`` entries per menu and per target, then
turns the accumulators into :class:`Menu` and :class:`Target` objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..errors import ConstructionError
from ..logbook import SessionLogger, get_logger
from .actions import Action, ActionResolver
from .records import Field, LogRecord, RecordKind, as_menu_id, as_target_key, as_text

RawEntry = Tuple[Any, ...]
TargetKey = Tuple[str, str]


@dataclass
class Target:
    """A selectable option of a menu."""

    menu: str
    id: str
    button: Optional[str] = None
    note: Optional[List[str]] = None
    action: Optional[Action] = None

    def __post_init__(self) -> None:
        if not self.id or not self.menu:
            raise ConstructionError(f"Target requires an id and a menu, got menu={self.menu!r} id={self.id!r}")

    @property
    def label(self) -> str:
        return self.button if self.button is not None else self.id

    @classmethod
    def from_entries(
        cls,
        instance: Any,
        resolver: ActionResolver,
        entries: Sequence[RawEntry],
        *,
        logger: Optional[SessionLogger] = None,
    ) -> "Target":
        """Fold accumulated ``(field, *values)`` entries into a target.

        ``instance`` is the contract an ``Action`` binds to unless the action
        names another instance.
        """

        menu: Optional[str] = None
        target_id: Optional[str] = None
        button: Optional[str] = None
        note: Optional[List[str]] = None
        action: Optional[Action] = None
        for entry in entries:
            if not entry:
                continue
            key, values = str(entry[0]), entry[1:]
            kind = Field.parse(key)
            if kind is Field.MENU:
                if values:
                    menu = as_menu_id(values[0])
            elif kind is Field.ID:
                if values:
                    target_id = as_text(values[0], "target id")
            elif kind is Field.NOTE:
                if note is None:
                    note = []
                note.append(as_text(values[0], "target note") if values else "")
            elif kind is Field.BUTTON:
                if values:
                    button = as_text(values[0], "target button")
            elif kind is Field.ACTION:
                action = resolver.resolve(instance, *values)
            elif logger is not None:
                logger.diagnostic("GRAPH", "unknown_target_field", field=key, target=target_id)
        return cls(menu=menu or "", id=target_id or "", button=button, note=note, action=action)


@dataclass
class Menu:
    """One menu screen: rendering items in emission order plus its targets."""

    id: str
    items: List[RawEntry] = field(default_factory=list)
    targets: Dict[str, Target] = field(default_factory=dict)


@dataclass
class MenuGraph:
    """Menus of one query in first-seen order."""

    menus: Dict[str, Menu] = field(default_factory=dict)
    raw_menus: Dict[str, List[RawEntry]] = field(default_factory=dict)
    raw_targets: Dict[TargetKey, List[RawEntry]] = field(default_factory=dict)

    def __iter__(self) -> Iterator[str]:
        return iter(self.menus)

    def __len__(self) -> int:
        return len(self.menus)

    def __getitem__(self, menu_id: str) -> Menu:
        return self.menus[menu_id]

    def __contains__(self, menu_id: object) -> bool:
        return menu_id in self.menus

    def items(self):
        return self.menus.items()

    def values(self):
        return self.menus.values()


class MenuGraphBuilder:
    """Two-pass decoder from :class:`LogRecord` sequences to a :class:`MenuGraph`."""

    def __init__(self, resolver: ActionResolver, *, logger: Optional[SessionLogger] = None) -> None:
        self.resolver = resolver
        self._logger = logger

    @property
    def logger(self) -> SessionLogger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    def build(self, logs: Sequence[LogRecord], instance: Any) -> MenuGraph:
        graph = MenuGraph()
        for record in logs:
            self._accumulate(graph, record)

        for menu_id, items in graph.raw_menus.items():
            targets: Dict[str, Target] = {}
            for (target_menu, target_id), entries in graph.raw_targets.items():
                if target_menu != menu_id:
                    self.logger.log("GRAPH", "skip_target", status="skipped", menu=menu_id, target=target_id)
                    continue
                target = Target.from_entries(instance, self.resolver, entries, logger=self.logger)
                if target.menu != menu_id:
                    self.logger.diagnostic("GRAPH", "target_menu_mismatch", menu=menu_id, target=target.id, target_menu=target.menu)
                    continue
                targets[target.id] = target
            graph.menus[menu_id] = Menu(id=menu_id, items=list(items), targets=targets)

        self.logger.log(
            "GRAPH",
            "build",
            records=len(logs),
            menus=list(graph.menus),
            targets=sum(len(menu.targets) for menu in graph.menus.values()),
        )
        return graph

    def _accumulate(self, graph: MenuGraph, record: LogRecord) -> None:
        kind = record.kind
        if kind is None:
            self.logger.diagnostic("GRAPH", "unrecognised_record", name=record.name, args=list(record.args))
            return
        if not record.args:
            self.logger.diagnostic("GRAPH", "missing_key", name=record.name)
            return
        first, rest = record.args[0], tuple(record.args[1:])
        if kind is RecordKind.TARGET:
            try:
                key = as_target_key(first)
            except ConstructionError as exc:
                self.logger.diagnostic("GRAPH", "malformed_target_key", name=record.name, error=str(exc))
                return
            if key not in graph.raw_targets:
                graph.raw_menus.setdefault(key[0], []).append((Field.TARGET.value, key[1]))
                graph.raw_targets[key] = [(Field.MENU.value, key[0]), (Field.ID.value, key[1])]
            graph.raw_targets[key].append((record.subkind, *rest))
        else:
            try:
                menu_id = as_menu_id(first)
            except ConstructionError as exc:
                self.logger.diagnostic("GRAPH", "malformed_menu_key", name=record.name, error=str(exc))
                return
            if menu_id not in graph.raw_menus:
                graph.raw_menus[menu_id] = [(Field.ID.value, menu_id)]
            graph.raw_menus[menu_id].append((record.subkind, *rest))


__all__ = ["Menu", "MenuGraph", "MenuGraphBuilder", "Target"]
