"""Terminal user interface for evmenu sessions."""

from .navigator import Navigator, prompt_choice
from .terminal import MenuRenderer

__all__ = ["MenuRenderer", "Navigator", "prompt_choice"]
