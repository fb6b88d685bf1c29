"""Storage backends for persisted session records."""

from sessionkit.storage.base import SessionStorage
from sessionkit.storage.memory import MemorySessionStorage
from sessionkit.storage.file import FileSessionStorage
from sessionkit.storage.dynamodb import DynamoDBSessionStorage
from sessionkit.storage.factory import create_storage

__all__ = [
    "SessionStorage",
    "MemorySessionStorage",
    "FileSessionStorage",
    "DynamoDBSessionStorage",
    "create_storage",
]
