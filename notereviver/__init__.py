"""Notereviver - rebuild file trees from exported note archives."""

__version__ = "0.1.0"

from .core.rebuilder import revive, revive_auto

__all__ = ["revive", "revive_auto"]
