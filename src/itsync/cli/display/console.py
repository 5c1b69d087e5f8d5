"""Shared console instance for rich output."""

from ..commands.common import console

__all__ = ["console"]
