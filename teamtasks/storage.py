"""Object storage bucket backed by a local directory.

Objects are public-read: ``get_public_url`` builds a link from the configured
URL prefix. Deletes are restricted to the uploader, recorded in a JSON sidecar
next to each object under ``<root>/.meta/``.
"""
from __future__ import annotations

import json
import logging
import mimetypes
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from teamtasks.backend import BackendError, Result


logger = logging.getLogger(__name__)


class StorageBucket:
    def __init__(self, name: str, root_dir: str, public_base_url: str = "/storage"):
        self.name = name
        self.root = Path(root_dir) / name
        self.meta_root = Path(root_dir) / ".meta" / name
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Optional[PurePosixPath]:
        p = PurePosixPath(path)
        if not path or p.is_absolute() or ".." in p.parts:
            return None
        return p

    def _meta_path(self, rel: PurePosixPath) -> Path:
        return self.meta_root / (str(rel) + ".json")

    def upload(
        self,
        path: str,
        data: bytes,
        *,
        owner_id: Optional[str],
        content_type: Optional[str] = None,
        upsert: bool = False,
    ) -> Result:
        if not owner_id:
            return Result(error=BackendError("Not authenticated", "not_authenticated"))
        rel = self._resolve(path)
        if rel is None:
            return Result(error=BackendError(f"Invalid object path: {path!r}", "invalid_path"))

        target = self.root / rel
        if target.exists() and not upsert:
            return Result(error=BackendError(f"Object already exists: {path}", "duplicate"))

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            meta = {
                "owner": owner_id,
                "content_type": content_type or mimetypes.guess_type(rel.name)[0] or "application/octet-stream",
                "size": len(data),
            }
            meta_path = self._meta_path(rel)
            meta_path.parent.mkdir(parents=True, exist_ok=True)
            meta_path.write_text(json.dumps(meta), encoding="utf-8")
        except OSError as exc:
            return Result(error=BackendError(str(exc), "storage_error"))

        logger.debug("Stored %s/%s (%d bytes)", self.name, rel, len(data))
        return Result(data={"path": str(rel)})

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.name}/{path.lstrip('/')}"

    def download(self, path: str) -> Result:
        rel = self._resolve(path)
        if rel is None:
            return Result(error=BackendError(f"Invalid object path: {path!r}", "invalid_path"))
        target = self.root / rel
        if not target.is_file():
            return Result(error=BackendError(f"Object not found: {path}", "not_found"))
        try:
            return Result(data=target.read_bytes())
        except OSError as exc:
            return Result(error=BackendError(str(exc), "storage_error"))

    def path_from_public_url(self, url: str) -> Optional[str]:
        prefix = f"{self.public_base_url}/{self.name}/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None

    def owner_of(self, path: str) -> Optional[str]:
        rel = self._resolve(path)
        if rel is None:
            return None
        try:
            meta = json.loads(self._meta_path(rel).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return meta.get("owner")

    def remove(self, paths: Iterable[str], *, user_id: Optional[str]) -> Result:
        """Delete objects owned by ``user_id``; others are silently kept."""
        if not user_id:
            return Result(error=BackendError("Not authenticated", "not_authenticated"))
        removed = []
        for path in paths:
            rel = self._resolve(path)
            if rel is None or self.owner_of(path) != user_id:
                continue
            try:
                os.remove(self.root / rel)
                os.remove(self._meta_path(rel))
            except FileNotFoundError:
                pass
            except OSError as exc:
                return Result(data=removed, error=BackendError(str(exc), "storage_error"))
            removed.append(str(rel))
        return Result(data=removed)
