"""Utility modules."""
from .clock import utcnow

__all__ = ["utcnow"]
