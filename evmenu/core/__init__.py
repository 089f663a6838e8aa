"""Menu graph decoding, action resolution and the execution engine bridge."""

from .actions import Action, ActionResolver, is_menu_response
from .engine import Client, Contract, ContractInstance, QueryResult
from .graph import Menu, MenuGraph, MenuGraphBuilder, Target
from .records import Field, LogRecord, RecordKind
from .registry import ContractInfo, ContractRegistry, Fragment
from .wallet import Wallet

__all__ = [
    "Action",
    "ActionResolver",
    "Client",
    "Contract",
    "ContractInfo",
    "ContractInstance",
    "ContractRegistry",
    "Field",
    "Fragment",
    "LogRecord",
    "Menu",
    "MenuGraph",
    "MenuGraphBuilder",
    "QueryResult",
    "RecordKind",
    "Target",
    "Wallet",
    "is_menu_response",
]
