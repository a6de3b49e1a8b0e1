"""File storage for uploaded debtor documents.

Layout: {UPLOAD_ROOT}/{debtor_id}/{uuid}{ext}
"""

import os
import shutil
import uuid

from monetaris.core.config import settings


class StorageError(Exception):
    pass


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _root() -> str:
    return os.path.abspath(settings.UPLOAD_ROOT)


def _inside_root(path: str) -> str:
    abs_path = os.path.abspath(path)
    root = _root()
    if os.path.commonpath([root, abs_path]) != root:
        raise StorageError("Path escapes the upload root")
    return abs_path


def put_bytes(debtor_id: str, data: bytes, file_ext: str) -> str:
    """Persist bytes under the debtor's directory and return the absolute path."""
    dir_path = _inside_root(os.path.join(_root(), debtor_id))
    _ensure_dir(dir_path)
    file_id = uuid.uuid4().hex
    abs_path = os.path.join(dir_path, f"{file_id}{file_ext}")

    # Atomic write: temp -> fsync -> move
    tmp_path = os.path.join(dir_path, f".{file_id}.tmp")
    with open(tmp_path, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, abs_path)
    return abs_path


def read_bytes(path: str) -> bytes:
    abs_path = _inside_root(path)
    if not os.path.isfile(abs_path):
        raise StorageError("Document file not found on disk")
    with open(abs_path, "rb") as f:
        return f.read()


def delete_file(path: str) -> bool:
    """Remove a stored file; returns False if it was already gone."""
    abs_path = _inside_root(path)
    try:
        os.remove(abs_path)
    except FileNotFoundError:
        return False
    return True


def delete_debtor_dir(debtor_id: str) -> None:
    dir_path = _inside_root(os.path.join(_root(), debtor_id))
    shutil.rmtree(dir_path, ignore_errors=True)
