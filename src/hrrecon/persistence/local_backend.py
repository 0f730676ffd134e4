"""Local-directory IFileStore for reports written next to the run."""

from __future__ import annotations

from pathlib import Path

from hrrecon.core.exceptions import FileStoreError


class LocalFileStore:
    """IFileStore rooted at a directory; paths are relative to it."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _path(self, path: str) -> Path:
        resolved = (self._root / path.lstrip("/")).resolve()
        if self._root.resolve() not in (resolved, *resolved.parents):
            raise FileStoreError(f"Path {path!r} escapes store root {self._root}")
        return resolved

    def read(self, path: str) -> bytes:
        try:
            return self._path(path).read_bytes()
        except OSError as exc:
            raise FileStoreError(f"Local read failed for {path!r}: {exc}") from exc

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise FileStoreError(f"Local write failed for {path!r}: {exc}") from exc
        return str(target)

    def list_files(self, prefix: str) -> list[str]:
        if not self._root.is_dir():
            return []
        root = self._root.resolve()
        return sorted(
            str(p.relative_to(root))
            for p in root.rglob("*")
            if p.is_file() and str(p.relative_to(root)).startswith(prefix)
        )
