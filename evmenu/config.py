"""Environment driven configuration for evmenu."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import keyring
from dotenv import load_dotenv
from keyring.errors import KeyringError

HOME_ENV = "EVMENU_HOME"
BUILD_DIR_ENV = "EVMENU_BUILD_DIR"
RPC_ENV = "EVMENU_ETH_RPC"
CONTRACT_ENV = "EVMENU_CONTRACT"
FUNCTION_ENV = "EVMENU_FUNCTION"
PRIVATE_KEY_ENV = "EVMENU_PRIVATE_KEY"
FUND_ENV = "EVMENU_FUND_WEI"
KEYRING_SERVICE = "evmenu"
KEYRING_USERNAME = "operator"

DEFAULT_CONTRACT = "Home"
DEFAULT_FUNCTION = "menu"
DEFAULT_FUND_WEI = 10**18


def state_dir() -> Path:
    """Return the directory used for evmenu state.

    Defaults to ``~/.evmenu`` unless ``EVMENU_HOME`` points elsewhere.
    """

    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".evmenu"


@dataclass
class Settings:
    """Resolved runtime settings for one session."""

    home: Path
    build_dir: Path
    rpc_url: Optional[str]
    contract: str
    function: str
    private_key: Optional[str]
    fund_wei: int


def _operator_key() -> Optional[str]:
    secret: Optional[str] = None
    try:
        secret = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except KeyringError:
        secret = None
    if not secret:
        secret = os.getenv(PRIVATE_KEY_ENV)
    return secret or None


def _fund_wei() -> int:
    raw = os.getenv(FUND_ENV)
    if not raw:
        return DEFAULT_FUND_WEI
    text = raw.strip().lower()
    return int(text, 16) if text.startswith("0x") else int(text)


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Load ``.env`` (or ``env_file``) and resolve settings from the environment."""

    if env_file is not None:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)
    return Settings(
        home=state_dir(),
        build_dir=Path(os.getenv(BUILD_DIR_ENV, "build")).expanduser(),
        rpc_url=os.getenv(RPC_ENV) or None,
        contract=os.getenv(CONTRACT_ENV, DEFAULT_CONTRACT),
        function=os.getenv(FUNCTION_ENV, DEFAULT_FUNCTION),
        private_key=_operator_key(),
        fund_wei=_fund_wei(),
    )


__all__ = ["Settings", "load_settings", "state_dir"]
