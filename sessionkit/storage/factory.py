"""Storage backend selection from session options."""

import logging
from typing import Any, Dict

from sessionkit.config import ConfigurationError
from sessionkit.storage.base import SessionStorage
from sessionkit.storage.dynamodb import DynamoDBSessionStorage
from sessionkit.storage.file import FileSessionStorage
from sessionkit.storage.memory import MemorySessionStorage

logger = logging.getLogger(__name__)


def create_storage(options: Dict[str, Any]) -> SessionStorage:
    """Build the storage backend named by the save_handler option.

    Args:
        options: Session runtime options

    Returns:
        A SessionStorage instance

    Raises:
        ConfigurationError: If the handler is unknown or lacks required options
        BackendFailure: If the backend cannot be initialized
    """
    handler = options.get("save_handler", "memory")
    max_lifetime = options.get("gc_maxlifetime", 1440)

    if handler == "memory":
        storage: SessionStorage = MemorySessionStorage(max_lifetime=max_lifetime)
    elif handler == "files":
        save_path = options.get("save_path")
        if not save_path:
            raise ConfigurationError("save_path", "required by the 'files' save handler")
        storage = FileSessionStorage(save_path, max_lifetime=max_lifetime)
    elif handler == "dynamodb":
        storage = DynamoDBSessionStorage(
            table_name=options.get("table_name"),
            region=options.get("region"),
            max_lifetime=max_lifetime,
        )
    else:
        raise ConfigurationError("save_handler", f"unknown save handler '{handler}'")

    logger.debug("Selected session storage", extra={"save_handler": handler})
    return storage
