"""Markup tree adapters."""

from .base import Node, TreeAdapter, TreeWalker
from .soup import SoupTreeAdapter

__all__ = ["Node", "TreeAdapter", "TreeWalker", "SoupTreeAdapter"]
