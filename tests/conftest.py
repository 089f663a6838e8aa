from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import keyring
import keyring.backend
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from evmenu import logbook  # noqa: E402
from evmenu.core.registry import ContractInfo, ContractRegistry  # noqa: E402


class MemoryKeyring(keyring.backend.KeyringBackend):
    priority = 1

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self._data.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self._data[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        self._data.pop((service, username), None)


class RecordingLogger:
    """Stand-in for :class:`evmenu.logbook.SessionLogger` capturing events."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, str, str, Dict[str, Any]]] = []

    def log(self, category: str, action: str, status: str = "success", *, level: int = logging.INFO, **fields: Any) -> None:
        self.events.append((category, action, status, fields))

    def diagnostic(self, category: str, action: str, **fields: Any) -> None:
        self.log(category, action, status="skipped", level=logging.WARNING, **fields)

    def diagnostics(self) -> List[str]:
        return [action for _, action, status, _ in self.events if status == "skipped"]


class FakeInstance:
    """A deployed contract without a chain behind it."""

    def __init__(self, info: ContractInfo, address: str) -> None:
        self.info = info
        self.address = address

    def function(self, fname: str):
        fragment = self.info.get_function(fname)
        assert fragment is not None, fname
        return fragment


class FakeInstances:
    def __init__(self, *instances: FakeInstance) -> None:
        self.by_key: Dict[str, FakeInstance] = {}
        for instance in instances:
            self.by_key[instance.info.name.lower()] = instance
            self.by_key[instance.address.lower()] = instance

    def instance(self, name_or_address: str) -> FakeInstance:
        from evmenu.errors import ResolutionError

        found = self.by_key.get(name_or_address.lower())
        if found is None:
            raise ResolutionError(f"Unknown contract instance: {name_or_address}")
        return found


def _fn(name: str, inputs: List[Dict[str, Any]], outputs: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs or [],
        "stateMutability": "nonpayable",
    }


def _event(name: str, *types: str) -> Dict[str, Any]:
    inputs = []
    for idx, abi_type in enumerate(types):
        if abi_type == "(string,string)":
            inputs.append(
                {
                    "name": f"arg{idx}",
                    "type": "tuple",
                    "indexed": False,
                    "components": [{"name": "menu", "type": "string"}, {"name": "id", "type": "string"}],
                }
            )
        else:
            inputs.append({"name": f"arg{idx}", "type": abi_type, "indexed": False})
    return {"type": "event", "name": name, "anonymous": False, "inputs": inputs}


TOKEN = {"name": "token", "type": "bytes32"}
RESPONSES = {
    "name": "responses",
    "type": "tuple[]",
    "components": [{"name": "key", "type": "string"}, {"name": "value", "type": "string"}],
}

MENU_EVENTS = [
    _event("Menu_Title", "string", "string"),
    _event("Menu_Text", "string", "string"),
    _event("Target_Id", "(string,string)"),
    _event("Target_Button", "(string,string)", "string"),
    _event("Target_Note", "(string,string)", "string"),
    _event("Target_Action", "(string,string)", "string"),
]

HOME_ABI = [
    _fn("menu", [TOKEN]),
    _fn("next", [TOKEN, RESPONSES]),
    _fn("about", [TOKEN]),
    {
        "type": "error",
        "name": "NotAllowed",
        "inputs": [{"name": "who", "type": "address"}, {"name": "code", "type": "uint256"}],
    },
    *MENU_EVENTS,
]

SHOP_ABI = [
    _fn("menu", [TOKEN]),
    _fn("buy", [TOKEN, RESPONSES]),
    _fn("next", [TOKEN]),
]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("EVMENU_HOME", str(tmp_path))
    for name in ("EVMENU_PRIVATE_KEY", "EVMENU_ETH_RPC", "EVMENU_BUILD_DIR", "EVMENU_CONTRACT", "EVMENU_FUNCTION"):
        monkeypatch.delenv(name, raising=False)
    keyring.set_keyring(MemoryKeyring())
    session_logger = logging.getLogger(logbook.LOGGER_NAME)
    for handler in list(session_logger.handlers):
        session_logger.removeHandler(handler)
        handler.close()
    monkeypatch.setattr(logbook, "_shared_logger", None)
    return tmp_path


@pytest.fixture()
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture()
def home_info() -> ContractInfo:
    return ContractInfo(name="Home", abi=[dict(entry) for entry in HOME_ABI], bytecode="00")


@pytest.fixture()
def shop_info() -> ContractInfo:
    return ContractInfo(name="Shop", abi=[dict(entry) for entry in SHOP_ABI], bytecode="00")


@pytest.fixture()
def registry(home_info: ContractInfo, shop_info: ContractInfo, recorder: RecordingLogger) -> ContractRegistry:
    return ContractRegistry.from_infos([home_info, shop_info], logger=recorder)


@pytest.fixture()
def home(home_info: ContractInfo) -> FakeInstance:
    return FakeInstance(home_info, "0x" + "11" * 20)


@pytest.fixture()
def shop(shop_info: ContractInfo) -> FakeInstance:
    return FakeInstance(shop_info, "0x" + "22" * 20)


@pytest.fixture()
def instances(home: FakeInstance, shop: FakeInstance) -> FakeInstances:
    return FakeInstances(home, shop)
