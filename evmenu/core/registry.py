"""Contract artifacts and the selector/event/error index built from them."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_utils import (
    event_signature_to_log_topic,
    function_signature_to_4byte_selector,
)
from eth_utils.abi import collapse_if_tuple

from ..errors import ArtifactError, ResolutionError
from ..logbook import SessionLogger, get_logger


def _normalise_abi(abi_definition: object) -> List[Dict[str, Any]]:
    if isinstance(abi_definition, list):
        return [dict(entry) for entry in abi_definition if isinstance(entry, dict)]
    raise ArtifactError("Contract ABI must be a list of JSON objects")


def _normalise_bytecode(raw: object) -> str:
    if isinstance(raw, dict):
        raw = raw.get("object", "")
    if not isinstance(raw, str):
        raise ArtifactError("Contract bytecode must be a hex string")
    text = raw.strip()
    if text.startswith("0x"):
        text = text[2:]
    return text


@dataclass(frozen=True)
class Fragment:
    """A single function, event or error entry of a contract ABI."""

    abi: Dict[str, Any] = field(hash=False, compare=False)
    name: str
    kind: str
    signature: str

    @classmethod
    def from_abi(cls, entry: Dict[str, Any]) -> "Fragment":
        name = str(entry.get("name", ""))
        types = ",".join(collapse_if_tuple(param) for param in entry.get("inputs", []))
        return cls(abi=entry, name=name, kind=str(entry.get("type", "")), signature=f"{name}({types})")

    @property
    def inputs(self) -> List[Dict[str, Any]]:
        return list(self.abi.get("inputs", []))

    @property
    def outputs(self) -> List[Dict[str, Any]]:
        return list(self.abi.get("outputs", []))

    @property
    def state_mutability(self) -> str:
        return str(self.abi.get("stateMutability", "nonpayable"))

    @property
    def selector(self) -> str:
        """``0x`` prefixed 4-byte selector of a function or error."""

        return "0x" + function_signature_to_4byte_selector(self.signature).hex()

    @property
    def topic(self) -> str:
        """``0x`` prefixed topic hash of an event."""

        return "0x" + event_signature_to_log_topic(self.signature).hex()

    def format(self) -> str:
        return self.signature

    def __str__(self) -> str:
        return self.signature


@dataclass
class ContractInfo:
    """Compiled contract: name, ABI entries and deployment bytecode."""

    name: str
    abi: List[Dict[str, Any]]
    bytecode: str = ""

    def fragments(self, kind: str) -> List[Fragment]:
        return [Fragment.from_abi(entry) for entry in self.abi if entry.get("type") == kind]

    def get_function(self, token: str) -> Optional[Fragment]:
        """Return the function matching a name, signature or selector."""

        for fragment in self.fragments("function"):
            if token in (fragment.name, fragment.signature, fragment.selector):
                return fragment
        return None


Indexed = Tuple[ContractInfo, Fragment]


def _push(index: Dict[str, List[Indexed]], key: str, value: Indexed) -> None:
    index.setdefault(key, []).append(value)


class ContractRegistry:
    """Index every known contract's functions, events and errors.

    The registry is built once at startup and shared by the action resolver,
    the graph builder and the engine for the whole session.
    """

    def __init__(self, *, logger: Optional[SessionLogger] = None) -> None:
        self.contracts: Dict[str, ContractInfo] = {}
        self.selectors: Dict[str, List[Indexed]] = {}
        self.events: Dict[str, List[Indexed]] = {}
        self.errors: Dict[str, List[Indexed]] = {}
        self._logger = logger

    @property
    def logger(self) -> SessionLogger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    def add(self, name: str, info: ContractInfo) -> None:
        self.contracts[name] = info
        for entry in info.abi:
            entry_type = entry.get("type", "function")
            if entry_type == "function":
                fragment = Fragment.from_abi(entry)
                # name, full signature and 4-byte selector all resolve
                for key in {fragment.name, fragment.signature, fragment.selector}:
                    _push(self.selectors, key, (info, fragment))
            elif entry_type == "event":
                fragment = Fragment.from_abi(entry)
                _push(self.events, fragment.topic, (info, fragment))
            elif entry_type == "error":
                fragment = Fragment.from_abi(entry)
                _push(self.errors, fragment.selector, (info, fragment))
            elif entry_type in {"constructor", "fallback", "receive"}:
                continue
            else:
                self.logger.diagnostic("REGISTRY", "unknown_abi_entry", contract=name, type=entry_type)

    def contract(self, name: str) -> ContractInfo:
        info = self.contracts.get(name)
        if info is None:
            raise ResolutionError(f"Unknown contract: {name}")
        return info

    def lookup_function(self, token: str) -> Indexed:
        """Resolve ``token`` to the last registered ``(contract, fragment)``."""

        found: Optional[Indexed] = None
        for candidate in self.selectors.get(token, []):
            found = candidate
        if found is None:
            raise ResolutionError(f"No function fragment found for {token!r}")
        return found

    def lookup_event(self, topic: str) -> Optional[Indexed]:
        matches = self.events.get(topic.lower())
        return matches[0] if matches else None

    def lookup_error(self, selector: str) -> Optional[Indexed]:
        matches = self.errors.get(selector.lower())
        return matches[0] if matches else None

    # ------------------------------------------------------------------
    # Artifact loading
    # ------------------------------------------------------------------
    @classmethod
    def from_infos(cls, infos: Sequence[ContractInfo], *, logger: Optional[SessionLogger] = None) -> "ContractRegistry":
        registry = cls(logger=logger)
        for info in infos:
            registry.add(info.name, info)
        return registry

    @classmethod
    def load_from_build_dir(
        cls, build_dir: Path, *, logger: Optional[SessionLogger] = None
    ) -> "ContractRegistry":
        """Load ``<Name>.abi``/``<Name>.bin`` pairs and JSON artifacts from ``build_dir``."""

        root = Path(build_dir).expanduser()
        if not root.is_dir():
            raise ArtifactError(f"Build directory not found: {root}")
        registry = cls(logger=logger)
        for path in sorted(root.glob("*.abi")):
            registry.add(path.stem, _load_abi_pair(path))
        for path in sorted(root.glob("*.json")):
            info = _load_json_artifact(path)
            if info is not None and info.name not in registry.contracts:
                registry.add(info.name, info)
        registry.logger.log("REGISTRY", "load", build_dir=str(root), contracts=sorted(registry.contracts))
        return registry


def _load_abi_pair(path: Path) -> ContractInfo:
    try:
        abi = _normalise_abi(json.loads(path.read_text(encoding="utf-8")))
    except json.JSONDecodeError as exc:
        raise ArtifactError(f"Invalid ABI JSON in {path}") from exc
    bin_path = path.with_suffix(".bin")
    if not bin_path.exists():
        raise ArtifactError(f"Missing bytecode for {path.stem}: {bin_path}")
    bytecode = _normalise_bytecode(bin_path.read_text(encoding="utf-8"))
    return ContractInfo(name=path.stem, abi=abi, bytecode=bytecode)


def _load_json_artifact(path: Path) -> Optional[ContractInfo]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ArtifactError(f"Invalid artifact JSON in {path}") from exc
    if not isinstance(payload, dict) or "abi" not in payload:
        return None
    name = str(payload.get("contractName", path.stem))
    return ContractInfo(
        name=name,
        abi=_normalise_abi(payload["abi"]),
        bytecode=_normalise_bytecode(payload.get("bytecode", "")),
    )


__all__ = ["ContractInfo", "ContractRegistry", "Fragment"]
