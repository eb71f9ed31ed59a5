"""Storage module - session store contract and its local filesystem implementation."""

from .interface import SessionStore
from .local_storage import LocalSessionStore

__all__ = ['SessionStore', 'LocalSessionStore']
