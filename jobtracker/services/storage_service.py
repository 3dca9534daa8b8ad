# jobtracker/services/storage_service.py
from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

from flask import current_app, url_for

log = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class BucketNotFoundError(StorageError):
    def __init__(self, bucket: str):
        super().__init__(f"Bucket not found: {bucket}")
        self.bucket = bucket


class UploadValidationError(ValueError):
    def __init__(self, title: str, description: str):
        super().__init__(f"{title}: {description}")
        self.title = title
        self.description = description


@dataclass
class StoredObject:
    bucket: str
    path: str
    size: int
    updated_at: datetime


# -----------------
# Bucket helpers
# -----------------

def _base() -> Path:
    base = current_app.config.get("UPLOAD_FOLDER")
    if not base:
        base = Path(current_app.instance_path) / "storage"
    return Path(base)


def _bucket_dir(bucket: str) -> Path:
    d = _base() / bucket
    if not d.is_dir():
        raise BucketNotFoundError(bucket)
    return d


def _safe_abs_path(bucket: str, object_path: str) -> Path:
    root = _bucket_dir(bucket).resolve()
    target = (root / (object_path or "")).resolve()
    if target != root and root not in target.parents:
        raise StorageError(f"Invalid object path: {object_path}")
    return target


def ensure_buckets(*buckets: str) -> None:
    for b in buckets:
        (_base() / b).mkdir(parents=True, exist_ok=True)


def is_bucket_not_found_error(error) -> bool:
    message = str(getattr(error, "message", None) or error or "").lower()
    return "bucket" in message and "not found" in message


def bucket_not_found_message(bucket: str) -> str:
    return f'Storage bucket "{bucket}" was not found. Run the storage setup so uploads can work.'


# -----------------
# Validation
# -----------------

def safe_object_name(filename: str) -> str:
    name = re.sub(r"\s+", "_", filename or "")
    return re.sub(r"[^a-zA-Z0-9._-]", "", name)


def file_size(file_storage) -> int:
    stream = file_storage.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def allowed_document(filename: str) -> bool:
    exts = current_app.config.get("ALLOWED_DOCUMENT_EXTENSIONS") or {"pdf", "doc", "docx"}
    suffix = Path(filename or "").suffix.lower().lstrip(".")
    return bool(suffix) and suffix in exts


def validate_document(file_storage) -> None:
    """Raise UploadValidationError for anything that is not a PDF/DOC/DOCX under the size cap."""
    if not file_storage or not file_storage.filename:
        raise UploadValidationError("No file", "Choose a file to upload.")
    if not allowed_document(file_storage.filename):
        raise UploadValidationError("Unsupported file", "Upload a PDF, DOC, or DOCX file.")
    max_mb = int(current_app.config.get("MAX_DOCUMENT_MB", 10))
    if file_size(file_storage) > max_mb * 1024 * 1024:
        raise UploadValidationError("File too large", f"Please upload a file smaller than {max_mb}MB.")


def object_path_for(*prefix, filename: str) -> str:
    """``<prefix>/<epoch ms>-<safe name>``, unique per upload."""
    parts = [str(p) for p in prefix if p not in (None, "")]
    parts.append(f"{int(time.time() * 1000)}-{safe_object_name(filename)}")
    return "/".join(parts)


# -----------------
# Objects
# -----------------

def upload(bucket: str, object_path: str, file_storage, upsert: bool = True) -> str:
    dest = _safe_abs_path(bucket, object_path)
    if dest.exists() and not upsert:
        raise StorageError(f"Object already exists: {bucket}/{object_path}")
    dest.parent.mkdir(parents=True, exist_ok=True)
    file_storage.stream.seek(0)
    file_storage.save(dest)
    log.info("stored %s/%s", bucket, object_path)
    return object_path


def public_url(bucket: str, object_path: str) -> str:
    return url_for("storage.public_object", bucket=bucket, object_path=object_path, _external=True)


def object_abs_path(bucket: str, object_path: str) -> Path:
    target = _safe_abs_path(bucket, object_path)
    if not target.is_file():
        raise StorageError(f"Object not found: {bucket}/{object_path}")
    return target


def list_objects(bucket: str, folder: str = "") -> list[StoredObject]:
    """Files directly under ``folder``, newest first."""
    d = _safe_abs_path(bucket, folder)
    if not d.is_dir():
        return []
    items = []
    for p in d.iterdir():
        if not p.is_file():
            continue
        st = p.stat()
        rel = f"{folder.strip('/')}/{p.name}" if folder.strip("/") else p.name
        items.append(StoredObject(bucket=bucket, path=rel, size=st.st_size,
                                  updated_at=datetime.utcfromtimestamp(st.st_mtime)))
    items.sort(key=lambda o: o.updated_at, reverse=True)
    return items


def latest_object(bucket: str, folders: list[str]) -> Optional[StoredObject]:
    latest = None
    for folder in folders:
        for obj in list_objects(bucket, folder):
            if latest is None or obj.updated_at > latest.updated_at:
                latest = obj
    return latest


def file_name_from_url(value: Optional[str]) -> str:
    if not value:
        return ""
    path = urlparse(value).path if value.startswith("http") else value
    last = [seg for seg in path.split("/") if seg]
    return unquote(last[-1]) if last else ""
