from __future__ import annotations

import json
from pathlib import Path

import pytest

from evmenu.core.registry import ContractInfo, ContractRegistry, Fragment
from evmenu.errors import ArtifactError, ResolutionError

from conftest import HOME_ABI, SHOP_ABI


def test_last_registered_contract_wins(registry: ContractRegistry) -> None:
    info, fragment = registry.lookup_function("next")
    assert info.name == "Shop"
    assert fragment.signature == "next(bytes32)"


def test_registration_order_decides_ambiguous_selector(home_info: ContractInfo, shop_info: ContractInfo, recorder) -> None:
    reversed_registry = ContractRegistry.from_infos([shop_info, home_info], logger=recorder)
    info, fragment = reversed_registry.lookup_function("next")
    assert info.name == "Home"
    assert fragment.signature == "next(bytes32,(string,string)[])"


def test_signature_and_selector_tokens_resolve(registry: ContractRegistry) -> None:
    info, fragment = registry.lookup_function("next(bytes32,(string,string)[])")
    assert info.name == "Home"
    by_selector = registry.lookup_function(fragment.selector)
    assert by_selector[1].signature == fragment.signature
    assert fragment.selector.startswith("0x") and len(fragment.selector) == 10


def test_unknown_selector_is_a_resolution_error(registry: ContractRegistry) -> None:
    with pytest.raises(ResolutionError):
        registry.lookup_function("missing")


def test_events_and_errors_are_indexed(registry: ContractRegistry) -> None:
    title = Fragment.from_abi(next(entry for entry in HOME_ABI if entry.get("name") == "Menu_Title"))
    info, fragment = registry.lookup_event(title.topic)
    assert (info.name, fragment.name) == ("Home", "Menu_Title")
    assert registry.lookup_event("0x" + "00" * 32) is None

    error = Fragment.from_abi(next(entry for entry in HOME_ABI if entry.get("type") == "error"))
    assert error.signature == "NotAllowed(address,uint256)"
    assert registry.lookup_error(error.selector)[1].name == "NotAllowed"


def test_unknown_contract_name(registry: ContractRegistry) -> None:
    assert registry.contract("Home").name == "Home"
    with pytest.raises(ResolutionError):
        registry.contract("Nowhere")


def test_unknown_abi_entry_types_are_reported(recorder) -> None:
    registry = ContractRegistry(logger=recorder)
    registry.add("Odd", ContractInfo(name="Odd", abi=[{"type": "mystery", "name": "x"}]))
    assert "unknown_abi_entry" in recorder.diagnostics()


def test_load_from_build_dir(tmp_path: Path, recorder) -> None:
    (tmp_path / "Home.abi").write_text(json.dumps(HOME_ABI), encoding="utf-8")
    (tmp_path / "Home.bin").write_text("0x6000\n", encoding="utf-8")
    (tmp_path / "Shop.json").write_text(
        json.dumps({"contractName": "Shop", "abi": SHOP_ABI, "bytecode": {"object": "0x00"}}),
        encoding="utf-8",
    )
    (tmp_path / "notes.json").write_text(json.dumps({"hello": "world"}), encoding="utf-8")

    registry = ContractRegistry.load_from_build_dir(tmp_path, logger=recorder)

    assert sorted(registry.contracts) == ["Home", "Shop"]
    assert registry.contract("Home").bytecode == "6000"
    assert registry.contract("Shop").bytecode == "00"


def test_missing_bytecode_is_an_artifact_error(tmp_path: Path, recorder) -> None:
    (tmp_path / "Home.abi").write_text(json.dumps(HOME_ABI), encoding="utf-8")
    with pytest.raises(ArtifactError):
        ContractRegistry.load_from_build_dir(tmp_path, logger=recorder)


def test_missing_build_dir(tmp_path: Path, recorder) -> None:
    with pytest.raises(ArtifactError):
        ContractRegistry.load_from_build_dir(tmp_path / "absent", logger=recorder)
