"""Durable storage for the persisted token record."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

TOKEN_FILE_NAME = "hubspace-tokens.json"


class TokenStore(Protocol):
    """Protocol for the single-record key-value store backing a session."""

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored record, or None if nothing was stored."""

    def save(self, record: Dict[str, Any]) -> None:
        """Replace the stored record."""

    def delete(self) -> None:
        """Remove the stored record. Missing records are not an error."""


class FileTokenStore:
    """Keeps the record as a JSON file, written atomically."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @classmethod
    def for_storage_path(cls, storage_path: Union[str, Path]) -> "FileTokenStore":
        """Store the token file next to a host application's storage directory."""
        return cls(Path(storage_path).parent / TOKEN_FILE_NAME)

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Token file {self.path} does not hold a JSON object")
        return data

    def save(self, record: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".tmp_", suffix=".json", text=True
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class MemoryTokenStore:
    """In-process store, for embedders without a filesystem and for tests."""

    def __init__(self, record: Optional[Dict[str, Any]] = None) -> None:
        self.record = dict(record) if record is not None else None
        self.save_count = 0

    def load(self) -> Optional[Dict[str, Any]]:
        return dict(self.record) if self.record is not None else None

    def save(self, record: Dict[str, Any]) -> None:
        self.record = dict(record)
        self.save_count += 1

    def delete(self) -> None:
        self.record = None
