"""Transport layer for mesh controller communication."""

from .base import Transport

__all__ = ["Transport"]
