"""Structured session logging for evmenu.

Every engine call, resolution and operator choice leaves a JSON line in
``~/.evmenu/logs/evmenu.log`` (or ``$EVMENU_HOME/logs``) via a rotating file
handler. Diagnostics about skipped log records are additionally echoed to
stderr so the operator notices malformed menus.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from .config import state_dir

__all__ = ["SessionLogger", "get_logger"]

LOGGER_NAME = "evmenu.session"


def _serialise(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_serialise(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _serialise(item) for key, item in value.items()}
    return str(value)


class SessionLogger:
    """Emit one JSON payload per session event.

    Parameters
    ----------
    path:
        Log file location. Defaults to ``<state dir>/logs/evmenu.log``.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or state_dir() / "logs" / "evmenu.log"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        # other handlers (pytest capture, embedding apps) may already be attached
        if not any(isinstance(handler, RotatingFileHandler) for handler in self._logger.handlers):
            formatter = logging.Formatter("%(message)s")

            file_handler = RotatingFileHandler(
                self.path,
                maxBytes=2_000_000,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)

            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.WARNING)
            console_handler.setFormatter(formatter)

            self._logger.addHandler(file_handler)
            self._logger.addHandler(console_handler)

    def log(
        self,
        category: str,
        action: str,
        status: str = "success",
        *,
        level: int = logging.INFO,
        **fields: Any,
    ) -> None:
        """Record a session event.

        Parameters
        ----------
        category:
            Subsystem emitting the event (``"ENGINE"``, ``"GRAPH"``...).
        action:
            Short verb describing what happened.
        status:
            ``"success"``, ``"failure"``, ``"skipped"`` etc.
        **fields:
            Additional context such as addresses, selectors or counts.
        """

        timestamp = datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()
        payload: Dict[str, Any] = {"action": action, "status": status}
        payload.update({key: _serialise(value) for key, value in fields.items()})
        serialized = json.dumps(payload, sort_keys=True)
        self._logger.log(level, f"{timestamp} | [{category.upper()}] {serialized}")

    def diagnostic(self, category: str, action: str, **fields: Any) -> None:
        """Report a skipped record that does not abort the session."""

        self.log(category, action, status="skipped", level=logging.WARNING, **fields)


_shared_logger: Optional[SessionLogger] = None


def get_logger() -> SessionLogger:
    global _shared_logger
    if _shared_logger is None:
        _shared_logger = SessionLogger()
    return _shared_logger
