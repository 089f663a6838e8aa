"""Command line entry point launching an evmenu session."""

from __future__ import annotations

import argparse
import importlib.util
import logging
import sys
from pathlib import Path
from textwrap import dedent
from typing import Optional, Sequence

from rich.console import Console
from rich.text import Text
from web3.exceptions import Web3Exception

from . import __version__
from .config import Settings, load_settings
from .errors import MenuSessionError
from .logbook import get_logger


def _missing_ui_dependencies() -> list[str]:
    """Return the third-party packages the terminal session needs but lacks."""

    required = ("prompt_toolkit", "rich")
    return [name for name in required if importlib.util.find_spec(name) is None]


def _print_dependency_error(missing: list[str]) -> None:
    message = dedent(
        f"""
        evmenu could not start because the following Python packages are missing:
            {', '.join(sorted(missing))}

        Install the project dependencies before launching a session, e.g.:
            python -m pip install -e .
        """
    ).strip()
    print(message, file=sys.stderr)


def _render_splash(console: Console, settings: Settings) -> None:
    console.print(f"[#00B7FF bold]evmenu v{__version__}[/]")
    engine = settings.rpc_url or "in-process eth-tester chain"
    console.print(f"[#7DF9FF]engine: {engine} • artifacts: {settings.build_dir}[/]", highlight=False)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="evmenu", description="Navigate menu-driven smart contracts")
    parser.add_argument("--version", action="store_true", help="Display version information and exit")
    parser.add_argument("--env-file", type=Path, default=None, help="Load settings from this .env file")
    parser.add_argument("--build-dir", type=Path, default=None, help="Directory holding <Name>.abi/<Name>.bin")
    parser.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint (default: in-process chain)")
    parser.add_argument("--contract", default=None, help="Contract whose menu starts the session")
    parser.add_argument("--function", default=None, help="Menu function to call first")
    parser.add_argument("--address", default=None, help="Attach to an existing deployment instead of deploying")
    return parser


def _apply_overrides(settings: Settings, options: argparse.Namespace) -> Settings:
    if options.build_dir is not None:
        settings.build_dir = options.build_dir
    if options.rpc_url:
        settings.rpc_url = options.rpc_url
    if options.contract:
        settings.contract = options.contract
    if options.function:
        settings.function = options.function
    return settings


def run_session(settings: Settings, *, address: Optional[str] = None, console: Optional[Console] = None) -> int:
    """Load artifacts, deploy (or attach) the head contract and drive the menus."""

    from .core.engine import Client
    from .core.registry import ContractRegistry
    from .driver import Driver
    from .ui.terminal import MenuRenderer

    logger = get_logger()
    registry = ContractRegistry.load_from_build_dir(settings.build_dir, logger=logger)
    client = Client.connect(
        registry,
        rpc_url=settings.rpc_url,
        operator_key=settings.private_key,
        fund_wei=settings.fund_wei,
        logger=logger,
    )
    if address:
        client.attach(settings.contract, address)
    else:
        client.deploy(settings.contract)
    driver = Driver(client, renderer=MenuRenderer(console), logger=logger)
    return driver.run(settings.contract, settings.function)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start an evmenu session and return the process exit status."""

    parser = _build_parser()
    options = parser.parse_args(list(argv) if argv is not None else None)
    if options.version:
        print(f"evmenu {__version__}")
        return 0

    missing = _missing_ui_dependencies()
    if missing:
        _print_dependency_error(missing)
        return 1

    settings = _apply_overrides(load_settings(options.env_file), options)
    console = Console(highlight=False)
    _render_splash(console, settings)
    logger = get_logger()
    logger.log("SESSION", "start", version=__version__, contract=settings.contract, function=settings.function)
    try:
        steps = run_session(settings, address=options.address, console=console)
        logger.log("SESSION", "end", steps=steps)
    except (MenuSessionError, Web3Exception) as exc:
        logger.log("SESSION", "abort", status="failure", error=f"{type(exc).__name__}: {exc}")
        console.print(Text.assemble((type(exc).__name__, "bold red"), f": {exc}"), highlight=False)
        return 1
    except Exception as exc:
        logger.log("SESSION", "crash", status="failure", error=f"{type(exc).__name__}: {exc}")
        raise
    finally:
        logging.shutdown()
    return 0


__all__ = ["main", "run_session"]
