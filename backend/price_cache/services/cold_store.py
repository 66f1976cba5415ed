"""Tier 2: directory-backed object store for archives and the registry."""

import asyncio
import json
import logging
import os
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

REGISTRY_OBJECT_KEY = "registry/coingecko_registry.json"


def price_snapshot_key(limit: int, snapshot_date: str) -> str:
    return f"prices/top{limit}/{snapshot_date}.json"


def composition_snapshot_key(limit: int, snapshot_date: str) -> str:
    return f"registry/top{limit}_snapshot/{snapshot_date}.json"


class ObjectStore:
    """Stores JSON objects as files under ``root``, one file per key.

    Writes go through a temporary file and an atomic rename, so readers see
    either the old object or the new one.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        parts = PurePosixPath(key).parts
        if not parts or key.startswith("/") or ".." in parts:
            raise ValueError(f"Invalid object key: {key!r}")
        return self.root.joinpath(*parts)

    async def get_json(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read, key)

    async def put_json(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)
        logger.debug(f"Cold store write: {key}")

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._path(key).is_file)

    def _read(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.is_file():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, key: str, value: Any) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(value, f, separators=(",", ":"))
        os.replace(tmp_path, path)
