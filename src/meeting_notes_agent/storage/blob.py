"""
Blob-хранилище аудио (локальная / shared FS).

Объект адресуется парой bucket + path:
    <BLOB_DIR>/<bucket>/<path>
"""

from __future__ import annotations

from pathlib import Path

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.errors import StorageError


def _base_dir() -> Path:
    # В docker-compose будет /data/blobs, локально ./data/blobs
    return Path(get_settings().blob_dir or "./data/blobs").resolve()


def _safe_part(value: str, what: str) -> list[str]:
    # защита от path traversal
    parts = [p for p in (value or "").strip().lstrip("/").split("/") if p]
    if not parts or any(p == ".." for p in parts):
        raise StorageError(f"invalid {what}", {what: value})
    return parts


def _object_path(bucket: str, path: str) -> Path:
    return _base_dir().joinpath(*_safe_part(bucket, "bucket"), *_safe_part(path, "path"))


def put_bytes(bucket: str, path: str, data: bytes) -> str:
    """Сохранить bytes и вернуть path."""
    p = _object_path(bucket, path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)
    return path


def get_bytes(bucket: str, path: str) -> bytes:
    p = _object_path(bucket, path)
    try:
        return p.read_bytes()
    except FileNotFoundError as e:
        raise StorageError(
            "Failed to download audio: object not found",
            {"bucket": bucket, "path": path},
        ) from e


def exists(bucket: str, path: str) -> bool:
    return _object_path(bucket, path).exists()


def delete(bucket: str, path: str) -> None:
    p = _object_path(bucket, path)
    try:
        p.unlink()
    except FileNotFoundError:
        pass


# =============================================================================
# РАСКЛАДКА ОБЪЕКТОВ
# =============================================================================
_MIME_EXT = (
    ("webm", "webm"),
    ("ogg", "ogg"),
    ("mpeg", "mp3"),
    ("mp4", "m4a"),
    ("wav", "wav"),
)


def ext_for_mime(mime_type: str | None) -> str:
    m = (mime_type or "").lower()
    for marker, ext in _MIME_EXT:
        if marker in m:
            return ext
    return "bin"


def chunk_object_path(owner_id: str, job_id: str, seq: int, mime_type: str | None) -> str:
    return f"{owner_id}/{job_id}/chunks/{seq:06d}.{ext_for_mime(mime_type)}"


def job_audio_path(owner_id: str, job_id: str, mime_type: str | None) -> str:
    return f"{owner_id}/{job_id}.{ext_for_mime(mime_type)}"
