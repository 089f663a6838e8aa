"""Operator key pairs used to sign deployments and menu calls."""

from __future__ import annotations

from typing import Any, Dict, Optional

from eth_account import Account


class Wallet:
    """An eth-account key pair plus a local mirror of its nonce.

    The mirror is informational: :meth:`evmenu.core.engine.Client.mine`
    always reloads the on-chain nonce right before signing.
    """

    def __init__(self, private_key: Optional[str] = None) -> None:
        self.account = Account.from_key(private_key) if private_key else Account.create()
        self.address: str = self.account.address
        self.nonce = 0

    def sign(self, tx: Dict[str, Any]) -> bytes:
        signed = self.account.sign_transaction(tx)
        return bytes(signed.raw_transaction)

    def tx(self, instance: Any, fname: str, *args: Any) -> Any:
        return instance.transact(self, fname, *args)

    def __repr__(self) -> str:
        return f"Wallet({self.address})"


__all__ = ["Wallet"]
