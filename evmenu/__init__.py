"""Terminal navigator for menu-driven smart contracts."""

__version__ = "0.1.0"

__all__ = ["__version__"]
