# docsign/services/document_files.py
from __future__ import annotations

import hashlib
import os
import secrets
import shutil
import time
from dataclasses import dataclass

from docsign.errors import NotFound, ValidationError

REJECTED_AREA = "rejected"


# =========================================================
# Types
# =========================================================
@dataclass(frozen=True)
class StoredFile:
    storage_key: str
    sha256: str


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def unix_millis() -> int:
    return int(time.time() * 1000)


def upload_storage_key(original_name: str) -> str:
    """
    Example:
      1760889600000-482913377.pdf
    """
    ext = os.path.splitext(original_name or "")[1].lower() or ".pdf"
    return f"{unix_millis()}-{secrets.randbelow(10**9)}{ext}"


def signed_storage_key(original_name: str) -> str:
    """
    Example:
      contract_signed_1760889600000.pdf
    """
    base = os.path.basename(original_name or "document")
    if base.lower().endswith(".pdf"):
        base = base[:-4]
    return f"{base or 'document'}_signed_{unix_millis()}.pdf"


# =========================================================
# Filesystem storage
# =========================================================
class FileStorage:
    """
    Local storage rooted at one directory. Keys are flat file names;
    the rejected archive lives in its own sub-directory.
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)
        os.makedirs(self.root, exist_ok=True)

    def _path(self, storage_key: str, area: str | None = None) -> str:
        # Keys never carry directories; strips any client-supplied path parts
        name = os.path.basename(storage_key or "")
        if not name:
            raise ValidationError("Empty storage key")
        base = os.path.join(self.root, area) if area else self.root
        return os.path.join(base, name)

    def exists(self, storage_key: str) -> bool:
        return os.path.isfile(self._path(storage_key))

    def read_bytes(self, storage_key: str) -> bytes:
        path = self._path(storage_key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise NotFound("Document file not found") from exc

    def write_bytes(self, storage_key: str, data: bytes) -> StoredFile:
        path = self._path(storage_key)
        with open(path, "wb") as f:
            f.write(data)
        return StoredFile(storage_key=os.path.basename(path), sha256=sha256_hex(data))

    def delete(self, storage_key: str) -> bool:
        try:
            os.remove(self._path(storage_key))
            return True
        except FileNotFoundError:
            return False

    def archive_path(self, name: str) -> str:
        return self._path(name, area=REJECTED_AREA)

    def copy_to_archive(self, storage_key: str, archive_name: str) -> str:
        """Copy a stored file into the rejected area. Overwrites, so safe to repeat."""
        src = self._path(storage_key)
        dest = self.archive_path(archive_name)
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        shutil.copyfile(src, dest)
        return dest
