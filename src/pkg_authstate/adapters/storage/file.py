from __future__ import annotations

import os
import tempfile
import urllib.parse
from pathlib import Path
from typing import Optional, Union


class FileStorage:
    """
    Longer-lived storage: one file per key inside `directory`.

    Writes go through a temporary file and `os.replace`, so readers never
    observe a half-written value.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        # keys such as "$dev_auth_state" must stay valid file names
        return self._directory / f"{urllib.parse.quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
