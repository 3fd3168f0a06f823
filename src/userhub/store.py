"""
User record store: one JSON file holding the full list of records.

Layout:
    ~/.userhub/data/users.json    # [{"id": 1, "name": ..., ...}, ...]

Every append rewrites the whole list through a temp file and a rename,
so readers see either the old list or the new one, never a torn file.
Appends are serialized behind a single writer lock held across the
read-count-write sequence; two concurrent appends can never compute
the same id.
"""

from __future__ import annotations

import contextlib
import json
import logging
import threading
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from .errors import StoreReadError, StoreWriteError
from .models import UserFields, UserRecord

logger = logging.getLogger("userhub.store")


class UserStore:
    """File-backed list of user records.

    Args:
        path: Location of the JSON record file. Created on first append.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._write_lock = threading.Lock()

    def get_all(self) -> list[UserRecord]:
        """Load every record, in append order.

        Returns:
            All stored records; an empty list if the file does not exist.

        Raises:
            StoreReadError: If the file exists but is unreadable or corrupt.
        """
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [UserRecord(**item) for item in data]
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as exc:
            raise StoreReadError(f"Cannot read {self.path}: {exc}") from exc

    def append(self, fields: UserFields | Mapping[str, Any]) -> UserRecord:
        """Append a new record and persist the full list.

        Args:
            fields: name, email, address and phone of the new user.

        Returns:
            The committed record with its assigned id.

        Raises:
            StoreReadError: If the existing records cannot be loaded.
            StoreWriteError: If the updated list cannot be written. Nothing
                is committed in that case.
        """
        if not isinstance(fields, UserFields):
            fields = UserFields(**fields)

        with self._write_lock:
            records = self.get_all()
            record = UserRecord(id=len(records) + 1, **fields.model_dump())
            self.replace_all([*records, record])

        logger.info("Stored user %d (%s)", record.id, record.email)
        return record

    def replace_all(self, records: list[UserRecord]) -> None:
        """Durably replace the stored list.

        Either the new list is fully written before this returns, or the
        prior file is left untouched.

        Raises:
            StoreWriteError: On any filesystem error.
        """
        payload = json.dumps([r.model_dump() for r in records], indent=2)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise StoreWriteError(f"Cannot write {self.path}: {exc}") from exc
