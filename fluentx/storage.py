"""Small key/value stores for client-side state (cached user id/name, wallet auth)."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

USER_ID_KEY = "fxv_user_id"
USER_FULLNAME_KEY = "fxv_user_fullname"
PENDING_WALLET_AUTH_KEY = "fxv_pending_wallet_auth"


class MemoryStore:
    """Process-local store; state is gone when the process exits."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def items(self) -> dict[str, Any]:
        return dict(self._data)


class LocalStore(MemoryStore):
    """JSON-file backed store. Every mutation is flushed with an atomic replace."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        super().__init__(self._read())

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def set(self, key: str, value: Any) -> None:
        super().set(key, value)
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            super().remove(key)
            self._flush()

    def clear(self) -> None:
        super().clear()
        self._flush()
