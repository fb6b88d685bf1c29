"""In-memory session storage backend.

Suitable for single-process deployments, development and tests.
"""

import copy
import logging
import threading
import time
from typing import Any, Dict, Optional

from sessionkit.logger import fingerprint
from sessionkit.models.session import SessionRecord
from sessionkit.storage.base import SessionStorage

logger = logging.getLogger(__name__)


class MemorySessionStorage(SessionStorage):
    """Stores session records in a process-local dictionary.

    Attribute mappings are deep-copied on the way in and out so that
    unsaved changes to a live session never leak into the store.
    """

    def __init__(self, max_lifetime: int = 1440):
        super().__init__(max_lifetime)
        self._records: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return None
            if record.is_expired():
                del self._records[session_id]
                logger.debug(
                    "Discarded expired session record",
                    extra={"session_id": fingerprint(session_id)},
                )
                return None
            return copy.deepcopy(record.attributes)

    def save(self, session_id: str, attributes: Dict[str, Any]) -> None:
        record = SessionRecord.create(
            session_id, copy.deepcopy(attributes), self.max_lifetime
        )
        with self._lock:
            self._records[session_id] = record

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def regenerate(
        self, old_id: str, new_id: str, attributes: Dict[str, Any]
    ) -> None:
        record = SessionRecord.create(
            new_id, copy.deepcopy(attributes), self.max_lifetime
        )
        with self._lock:
            self._records[new_id] = record
            self._records.pop(old_id, None)

    def gc(self, max_lifetime: int) -> int:
        cutoff = time.time() - max_lifetime
        with self._lock:
            stale = [
                sid
                for sid, record in self._records.items()
                if record.last_access < cutoff or record.is_expired()
            ]
            for sid in stale:
                del self._records[sid]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
