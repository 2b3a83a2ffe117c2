"""Authoritative server for persisted DuoXO games."""

from .api import create_app
from .storage import MemoryStorage, MongoStorage, Storage, create_storage

__all__ = ["MemoryStorage", "MongoStorage", "Storage", "create_app", "create_storage"]
