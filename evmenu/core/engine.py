"""Execution engine bridge: deploy contracts, run menu calls, decode logs.

The engine itself is web3: an in-process ``EthereumTesterProvider`` chain by
default, or any JSON-RPC node when an RPC URL is configured. Every call is
preflighted with ``eth_call`` so revert payloads can be decoded into named
errors, then mined as a signed legacy transaction so the emitted events are
available from the receipt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception
from web3.providers.eth_tester import EthereumTesterProvider

from ..config import DEFAULT_FUND_WEI
from ..errors import ExecutionError, ResolutionError
from ..logbook import SessionLogger, get_logger
from . import codec
from .records import LogRecord
from .registry import ContractInfo, ContractRegistry, Fragment
from .wallet import Wallet

DEFAULT_GAS_LIMIT = 2_000_000


@dataclass
class QueryResult:
    """Decoded return values and log records of one menu call."""

    result: Tuple[Any, ...]
    logs: List[LogRecord] = field(default_factory=list)
    tx_hash: Optional[str] = None


def _unwrap(values: Tuple[Any, ...]) -> Any:
    if len(values) == 1:
        return values[0]
    if not values:
        return None
    return values


class ContractInstance:
    """A deployed contract at a known address."""

    def __init__(self, address: str, contract: "Contract") -> None:
        self.address = address
        self.contract = contract

    @property
    def info(self) -> ContractInfo:
        return self.contract.info

    @property
    def client(self) -> "Client":
        return self.contract.client

    def has(self, fname: str) -> bool:
        return self.info.get_function(fname) is not None

    def function(self, fname: str) -> Fragment:
        fragment = self.info.get_function(fname)
        if fragment is None:
            raise ResolutionError(f"{self.info.name} has no function {fname!r}")
        return fragment

    def query(self, fname: str, *args: Any) -> QueryResult:
        """Run ``fname`` and collect the events it emits."""

        fragment = self.function(fname)
        data = codec.encode_call(fragment, args)
        client = self.client
        wallet = client.operator
        return_data = client.call(wallet, self.address, data)
        receipt = client.mine(wallet, {"to": self.address, "data": data})
        logs = client.decode_logs(receipt["logs"])
        tx_hash = Web3.to_hex(receipt["transactionHash"])
        client.logger.log(
            "ENGINE",
            "query",
            contract=self.info.name,
            address=self.address,
            function=fragment.signature,
            logs=len(logs),
            tx_hash=tx_hash,
        )
        return QueryResult(result=codec.decode_output(fragment, return_data), logs=logs, tx_hash=tx_hash)

    def transact(self, wallet: Wallet, fname: str, *args: Any) -> Any:
        """Mine ``fname`` from ``wallet`` and return its decoded return value."""

        fragment = self.function(fname)
        data = codec.encode_call(fragment, args)
        client = self.client
        return_data = client.call(wallet, self.address, data)
        receipt = client.mine(wallet, {"to": self.address, "data": data})
        client.logger.log(
            "ENGINE",
            "transact",
            contract=self.info.name,
            function=fragment.signature,
            sender=wallet.address,
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
        )
        return _unwrap(codec.decode_output(fragment, return_data))

    def __repr__(self) -> str:
        return f"ContractInstance({self.info.name}@{self.address})"


class Contract:
    """A compiled contract that can be deployed through a :class:`Client`."""

    def __init__(self, client: "Client", info: ContractInfo) -> None:
        self.client = client
        self.info = info

    def deploy(self, wallet: Wallet, *args: Any) -> ContractInstance:
        """Deploy the contract; argument-less deployments are reused by name."""

        deployment_key = self.info.name.lower()
        if not args and deployment_key in self.client.deployments:
            return self.client.deployments[deployment_key]
        receipt = self.client.mine(wallet, {"data": codec.encode_deploy(self.info, args)})
        address = to_checksum_address(receipt["contractAddress"])
        instance = ContractInstance(address, self)
        self.client.register(instance, deployment_key=deployment_key if not args else None)
        self.client.logger.log("ENGINE", "deploy", contract=self.info.name, address=address, args=list(args))
        return instance

    def instance(self, address: str) -> ContractInstance:
        return ContractInstance(to_checksum_address(address), self)


class Client:
    """Session-wide handle on the chain, the registry and known instances."""

    def __init__(
        self,
        web3: Web3,
        registry: ContractRegistry,
        *,
        operator_key: Optional[str] = None,
        fund_wei: int = DEFAULT_FUND_WEI,
        logger: Optional[SessionLogger] = None,
    ) -> None:
        self.web3 = web3
        self.registry = registry
        self.fund_wei = fund_wei
        self.deployments: Dict[str, ContractInstance] = {}
        self.by_address: Dict[str, ContractInstance] = {}
        self._operator_key = operator_key
        self._operator: Optional[Wallet] = None
        self._logger = logger

    @classmethod
    def connect(cls, registry: ContractRegistry, *, rpc_url: Optional[str] = None, **kwargs: Any) -> "Client":
        if rpc_url:
            web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": 10}))
        else:
            web3 = Web3(EthereumTesterProvider())
        return cls(web3, registry, **kwargs)

    @property
    def logger(self) -> SessionLogger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    @property
    def operator(self) -> Wallet:
        """Wallet used for menu calls and deployments, created on first use."""

        if self._operator is None:
            self._operator = self.new_wallet(self._operator_key)
        return self._operator

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------
    def new_wallet(self, private_key: Optional[str] = None) -> Wallet:
        wallet = Wallet(private_key)
        self._fund(wallet.address)
        self.logger.log("WALLET", "create", address=wallet.address)
        return wallet

    def _fund(self, address: str) -> None:
        if self.fund_wei <= 0 or self.web3.eth.get_balance(address) >= self.fund_wei:
            return
        accounts = self.web3.eth.accounts
        if not accounts:
            self.logger.diagnostic("WALLET", "fund", address=address, reason="no unlocked faucet account")
            return
        tx_hash = self.web3.eth.send_transaction({"from": accounts[0], "to": address, "value": self.fund_wei})
        self.web3.eth.wait_for_transaction_receipt(tx_hash)

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------
    def register(self, instance: ContractInstance, *, deployment_key: Optional[str] = None) -> None:
        if deployment_key:
            self.deployments[deployment_key.lower()] = instance
        self.by_address[instance.address.lower()] = instance

    def instance(self, name_or_address: str) -> ContractInstance:
        """Resolve a deployed instance by address or by contract name."""

        key = name_or_address.lower()
        found = self.by_address.get(key) or self.deployments.get(key)
        if found is None:
            raise ResolutionError(f"Unknown contract instance: {name_or_address}")
        return found

    def contract(self, name: str) -> Contract:
        return Contract(self, self.registry.contract(name))

    def deploy(self, name: str, *args: Any, wallet: Optional[Wallet] = None) -> ContractInstance:
        return self.contract(name).deploy(wallet or self.operator, *args)

    def attach(self, name: str, address: str) -> ContractInstance:
        """Register an already deployed contract as ``name``."""

        instance = self.contract(name).instance(address)
        self.register(instance, deployment_key=name)
        return instance

    # ------------------------------------------------------------------
    # Calls and transactions
    # ------------------------------------------------------------------
    def call(self, wallet: Wallet, address: str, data: bytes) -> bytes:
        """``eth_call`` preflight; reverts are decoded into :class:`ExecutionError`."""

        try:
            return bytes(self.web3.eth.call({"from": wallet.address, "to": address, "data": Web3.to_hex(data)}))
        except ContractLogicError as exc:
            error = codec.decode_revert(self.registry, codec.to_bytes(exc.data), str(exc))
            self.logger.log("ENGINE", "call", status="failure", address=address, error=str(error))
            raise error from exc

    def _estimate_gas(self, tx: Dict[str, Any]) -> int:
        try:
            return int(self.web3.eth.estimate_gas(tx))
        except Web3Exception:
            return DEFAULT_GAS_LIMIT

    def _gas_price(self) -> int:
        # legacy transactions must still cover the block base fee
        base_fee = self.web3.eth.get_block("latest").get("baseFeePerGas", 0) or 0
        return max(int(self.web3.eth.gas_price), 2 * int(base_fee))

    def mine(self, wallet: Wallet, tx: Dict[str, Any]) -> Any:
        """Sign ``tx`` with ``wallet``, send it and wait for a successful receipt."""

        nonce = self.web3.eth.get_transaction_count(wallet.address)
        payload: Dict[str, Any] = {"from": wallet.address, "value": 0, **tx}
        if isinstance(payload.get("data"), (bytes, bytearray)):
            payload["data"] = Web3.to_hex(payload["data"])
        if "gas" not in payload:
            payload["gas"] = self._estimate_gas(payload)
        payload.update(
            {
                "nonce": nonce,
                "gasPrice": self._gas_price(),
                "chainId": self.web3.eth.chain_id,
            }
        )
        payload.pop("from")
        tx_hash = self.web3.eth.send_raw_transaction(wallet.sign(payload))
        receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            self.logger.log("ENGINE", "mine", status="failure", tx_hash=Web3.to_hex(tx_hash))
            raise ExecutionError(f"Transaction {Web3.to_hex(tx_hash)} reverted")
        wallet.nonce = nonce + 1
        return receipt

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------
    def decode_logs(self, raw_logs: Sequence[Any]) -> List[LogRecord]:
        """Map receipt logs to :class:`LogRecord` using the registry's events."""

        records: List[LogRecord] = []
        for entry in raw_logs:
            address = str(entry["address"])
            origin = self.by_address.get(address.lower())
            if origin is None:
                raise ResolutionError(f"Log origin unknown: {address}")
            topics = list(entry["topics"])
            if not topics:
                self.logger.diagnostic("ENGINE", "anonymous_log", address=address)
                continue
            match = self.registry.lookup_event(Web3.to_hex(topics[0]))
            if match is None:
                self.logger.diagnostic("ENGINE", "unrecognised_log", address=address, topic=Web3.to_hex(topics[0]))
                continue
            _, fragment = match
            values = codec.decode_event(fragment, topics, entry["data"])
            records.append(LogRecord(origin=origin, name=fragment.name, args=values))
        return records


__all__ = ["Client", "Contract", "ContractInstance", "QueryResult"]
