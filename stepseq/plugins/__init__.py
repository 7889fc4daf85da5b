"""
Optional handlers that extend the action vocabulary.
"""

from .nested import NestedSequenceHandler

__all__ = ["NestedSequenceHandler"]
