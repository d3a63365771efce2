"""Document store collaborator.

Uploaded invoice and statement files live in an external blob store. The
reconciliation core only needs to check that a blob exists (and its size),
hand out download URLs, and delete blobs when their month entries go away.
"""

from __future__ import annotations

import re
import uuid
from pathlib import Path
from typing import Protocol

from .logging_setup import get_logger

_logger = get_logger("faktoora.documents")

_REF_RE = re.compile(r"^[0-9a-f]{32}$")


class DocumentStore(Protocol):
    def store(self, blob: bytes) -> str: ...

    def get(self, storage_ref: str) -> bytes | None: ...

    def get_url(self, storage_ref: str) -> str | None: ...

    def delete(self, storage_ref: str) -> None: ...

    def generate_upload_url(self) -> str: ...


def safe_delete(documents: DocumentStore, storage_ref: str) -> None:
    """Delete a blob if it still exists; storage failures are logged, not raised.

    Month records are the source of truth: once an entry has been removed from
    its month, a leftover blob is harmless.
    """

    try:
        if documents.get_url(storage_ref):
            documents.delete(storage_ref)
    except Exception as e:  # noqa: BLE001 - storage backends raise arbitrary errors
        _logger.warning("failed to delete %s from storage: %s", storage_ref, e)


class InMemoryDocumentStore:
    """Process-local blob store used by tests."""

    def __init__(self, base_url: str = "memory://documents") -> None:
        self.base_url = base_url.rstrip("/")
        self._blobs: dict[str, bytes] = {}

    def store(self, blob: bytes) -> str:
        ref = uuid.uuid4().hex
        self._blobs[ref] = bytes(blob)
        return ref

    def get(self, storage_ref: str) -> bytes | None:
        return self._blobs.get(storage_ref)

    def get_url(self, storage_ref: str) -> str | None:
        if storage_ref not in self._blobs:
            return None
        return f"{self.base_url}/{storage_ref}"

    def delete(self, storage_ref: str) -> None:
        self._blobs.pop(storage_ref, None)

    def generate_upload_url(self) -> str:
        return f"{self.base_url}/upload/{uuid.uuid4().hex}"

    def __contains__(self, storage_ref: object) -> bool:
        return storage_ref in self._blobs


class FileDocumentStore:
    """Blob store backed by a local directory; one file per storage ref.

    Used by the CLI so that blobs survive between invocations. Refs are
    random hex names, so a ref read from the outside can never escape
    ``root``.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, storage_ref: str) -> Path | None:
        if not _REF_RE.match(storage_ref):
            return None
        return self.root / storage_ref

    def store(self, blob: bytes) -> str:
        ref = uuid.uuid4().hex
        (self.root / ref).write_bytes(bytes(blob))
        _logger.debug("stored %d bytes as %s", len(blob), ref)
        return ref

    def get(self, storage_ref: str) -> bytes | None:
        path = self._path(storage_ref)
        if path is None or not path.is_file():
            return None
        return path.read_bytes()

    def get_url(self, storage_ref: str) -> str | None:
        path = self._path(storage_ref)
        if path is None or not path.is_file():
            return None
        return path.resolve().as_uri()

    def delete(self, storage_ref: str) -> None:
        path = self._path(storage_ref)
        if path is not None:
            path.unlink(missing_ok=True)

    def generate_upload_url(self) -> str:
        return f"{self.root.resolve().as_uri()}/upload/{uuid.uuid4().hex}"


__all__ = ["DocumentStore", "FileDocumentStore", "InMemoryDocumentStore", "safe_delete"]
