"""File session storage backend.

Each session is stored as a JSON document named ``sess_<id>`` inside the
configured directory. Writes go through a temporary file and os.replace so
readers never observe a partially written record.
"""

import json
import logging
import os
import tempfile
import time
from typing import Any, Dict, Optional

from sessionkit.exceptions import BackendFailure
from sessionkit.logger import fingerprint
from sessionkit.models.session import SessionRecord
from sessionkit.storage.base import SessionStorage

logger = logging.getLogger(__name__)

FILE_PREFIX = "sess_"


class FileSessionStorage(SessionStorage):
    """Stores session records as JSON files in a directory.

    Attributes:
        save_path: Directory holding the session files
    """

    def __init__(self, save_path: str, max_lifetime: int = 1440):
        """Initialize the file storage backend.

        Args:
            save_path: Directory for session files (created if missing)
            max_lifetime: Seconds a record stays valid after its last write

        Raises:
            BackendFailure: If the directory cannot be created
        """
        super().__init__(max_lifetime)
        self.save_path = save_path
        try:
            os.makedirs(save_path, exist_ok=True)
        except OSError as e:
            logger.error(
                "Failed to create session directory",
                extra={"save_path": save_path, "error": str(e)},
            )
            raise BackendFailure("open", str(e))

    def _path(self, session_id: str) -> str:
        filename = FILE_PREFIX + session_id
        if os.path.basename(filename) != filename:
            raise BackendFailure("open", "session id is not a valid file name", session_id)
        return os.path.join(self.save_path, filename)

    def _read_record(self, path: str) -> Optional[SessionRecord]:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return SessionRecord.from_dict(json.load(fh))
        except FileNotFoundError:
            return None

    def _write_record(self, record: SessionRecord) -> None:
        path = self._path(record.session_id)
        fd, tmp_path = tempfile.mkstemp(dir=self.save_path, prefix=".tmp_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(record.to_dict(), fh)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _fail(self, operation: str, session_id: str, error: Exception) -> BackendFailure:
        logger.error(
            f"Failed to {operation} session file",
            extra={
                "session_id": fingerprint(session_id),
                "save_path": self.save_path,
                "error": str(error),
            },
        )
        return BackendFailure(operation, str(error), session_id)

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        try:
            record = self._read_record(self._path(session_id))
        except (OSError, TypeError, ValueError, KeyError) as e:
            raise self._fail("load", session_id, e)

        if record is None:
            return None
        if record.is_expired():
            logger.debug(
                "Ignoring expired session file",
                extra={"session_id": fingerprint(session_id)},
            )
            return None
        return record.attributes

    def save(self, session_id: str, attributes: Dict[str, Any]) -> None:
        record = SessionRecord.create(session_id, attributes, self.max_lifetime)
        try:
            self._write_record(record)
        except OSError as e:
            raise self._fail("save", session_id, e)

    def delete(self, session_id: str) -> None:
        try:
            os.unlink(self._path(session_id))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise self._fail("delete", session_id, e)

    def regenerate(
        self, old_id: str, new_id: str, attributes: Dict[str, Any]
    ) -> None:
        record = SessionRecord.create(new_id, attributes, self.max_lifetime)
        try:
            self._write_record(record)
        except OSError as e:
            raise self._fail("regenerate", new_id, e)

        try:
            os.unlink(self._path(old_id))
        except FileNotFoundError:
            pass
        except OSError as e:
            # Roll back so the old id remains the only copy
            try:
                os.unlink(self._path(new_id))
            except OSError:
                logger.warning(
                    "Could not roll back regenerated session file",
                    extra={"session_id": fingerprint(new_id)},
                )
            raise self._fail("regenerate", old_id, e)

    def gc(self, max_lifetime: int) -> int:
        now = time.time()
        cutoff = now - max_lifetime
        removed = 0
        try:
            entries = list(os.scandir(self.save_path))
        except OSError as e:
            raise self._fail("gc", "", e)

        for entry in entries:
            if not entry.name.startswith(FILE_PREFIX) or not entry.is_file():
                continue
            try:
                if entry.stat().st_mtime >= cutoff:
                    record = self._read_record(entry.path)
                    if record is not None and not record.is_expired(now):
                        continue
                os.unlink(entry.path)
                removed += 1
            except FileNotFoundError:
                continue
            except (OSError, TypeError, ValueError, KeyError) as e:
                logger.warning(
                    "Skipping unreadable session file during gc",
                    extra={"file": entry.name, "error": str(e)},
                )

        logger.info(
            "Session file garbage collection finished",
            extra={"removed": removed, "save_path": self.save_path},
        )
        return removed
