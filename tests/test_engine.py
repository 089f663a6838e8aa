from __future__ import annotations

import pytest
from eth_abi import abi as eth_abi

from evmenu.core.engine import Client, Contract, ContractInstance
from evmenu.core.records import LogRecord
from evmenu.core.wallet import Wallet
from evmenu.errors import ResolutionError

HOME_ADDRESS = "0x" + "11" * 20
STRANGER = "0x" + "99" * 20


@pytest.fixture()
def client(registry, recorder) -> Client:
    # log decoding and instance lookup never touch the chain
    return Client(None, registry, logger=recorder)


@pytest.fixture()
def deployed(client: Client, home_info) -> ContractInstance:
    instance = Contract(client, home_info).instance(HOME_ADDRESS)
    client.register(instance, deployment_key="Home")
    return instance


def _topic(registry, name: str) -> str:
    for topic, matches in registry.events.items():
        if matches[0][1].name == name:
            return topic
    raise AssertionError(name)


def test_decode_logs_builds_records(client: Client, deployed: ContractInstance, registry) -> None:
    raw = [
        {
            "address": deployed.address,
            "topics": [bytes.fromhex(_topic(registry, "Menu_Title")[2:])],
            "data": eth_abi.encode(["string", "string"], ["main", "Welcome"]),
        }
    ]
    records = client.decode_logs(raw)
    assert records == [LogRecord(origin=deployed, name="Menu_Title", args=("main", "Welcome"))]


def test_unknown_log_origin_is_fatal(client: Client, deployed: ContractInstance, registry) -> None:
    raw = [{"address": STRANGER, "topics": [bytes.fromhex(_topic(registry, "Menu_Title")[2:])], "data": b""}]
    with pytest.raises(ResolutionError, match="origin"):
        client.decode_logs(raw)


def test_unrecognised_and_anonymous_logs_are_skipped(client: Client, deployed: ContractInstance, recorder) -> None:
    raw = [
        {"address": deployed.address, "topics": [b"\x00" * 32], "data": b""},
        {"address": deployed.address, "topics": [], "data": b""},
    ]
    assert client.decode_logs(raw) == []
    assert recorder.diagnostics() == ["unrecognised_log", "anonymous_log"]


def test_instance_lookup_by_name_and_address(client: Client, deployed: ContractInstance) -> None:
    assert client.instance("home") is deployed
    assert client.instance(deployed.address) is deployed
    with pytest.raises(ResolutionError):
        client.instance("Shop")


def test_function_lookup_on_instance(deployed: ContractInstance) -> None:
    assert deployed.has("about")
    assert deployed.function("about").signature == "about(bytes32)"
    with pytest.raises(ResolutionError):
        deployed.function("buy")


def test_wallet_from_key_is_deterministic() -> None:
    key = "0x" + "42" * 32
    assert Wallet(key).address == Wallet(key).address
    assert Wallet().address != Wallet().address


def test_in_process_chain_deploys_and_queries(registry, recorder) -> None:
    client = Client.connect(registry, logger=recorder)

    instance = client.deploy("Home")

    assert client.deploy("Home") is instance
    assert client.web3.eth.get_balance(client.operator.address) > 0
    result = instance.query("menu", b"\x00" * 32)
    assert result.logs == []
    assert result.result == ()
    assert result.tx_hash.startswith("0x")
    assert client.operator.nonce == client.web3.eth.get_transaction_count(client.operator.address)


def test_wallet_transact_on_in_process_chain(registry, recorder) -> None:
    client = Client.connect(registry, logger=recorder)
    instance = client.deploy("Home")
    wallet = client.new_wallet()

    assert wallet.tx(instance, "about", b"\x01" * 32) is None
    assert wallet.nonce == 1
