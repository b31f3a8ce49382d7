# Overview: Object storage for product images (MinIO / S3-compatible) with short-lived URL memoization.

from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import BinaryIO
from urllib.parse import quote

from flask import current_app
from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError as TransportError

IMAGE_PREFIX = "productImages"


class ImageStorageError(RuntimeError):
    """Raised when the object store rejects or fails an operation."""


class _UrlCache:
    """
    path -> (url, expires_at) memo.

    Presigned URLs are themselves time-limited, so entries are only kept for
    IMAGE_URL_TTL_SECONDS, which must stay below the presign expiry.
    """

    def __init__(self):
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            hit = self._entries.get(key)
            if hit is None:
                return None
            url, expires_at = hit
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return url

    def put(self, key: str, url: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (url, time.monotonic() + ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_url_cache = _UrlCache()


def get_minio_client() -> Minio:
    """Get configured MinIO client instance."""
    cfg = current_app.config
    return Minio(
        cfg["MINIO_ENDPOINT"],
        access_key=cfg["MINIO_ACCESS_KEY"],
        secret_key=cfg["MINIO_SECRET_KEY"],
        secure=cfg["MINIO_USE_SSL"],
    )


def generate_object_key(filename: str, *, now_ms: int | None = None) -> str:
    """
    productImages/<epoch-ms>_<url-quoted original filename>

    The millisecond prefix keeps two uploads of the same file apart.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    safe_name = quote(filename or "image", safe="")
    return f"{IMAGE_PREFIX}/{now_ms}_{safe_name}"


def upload_product_image(
    stream: BinaryIO,
    filename: str,
    *,
    content_type: str | None = None,
    length: int = -1,
) -> str:
    """
    Store an image and return its object key (what photo_history records).

    length=-1 streams with multipart upload when the size is unknown.

    Raises:
        ImageStorageError: if MinIO fails
    """
    bucket = current_app.config["MINIO_BUCKET"]
    object_key = generate_object_key(filename)
    client = get_minio_client()
    try:
        client.put_object(
            bucket,
            object_key,
            stream,
            length,
            content_type=content_type or "application/octet-stream",
            part_size=10 * 1024 * 1024 if length == -1 else 0,
        )
    except (S3Error, TransportError) as e:
        current_app.logger.exception("Failed to upload product image %s", object_key)
        raise ImageStorageError(f"Failed to upload image: {e}")

    current_app.logger.info("Uploaded product image %s", object_key)
    return object_key


def resolve_image_url(path: str) -> str:
    """
    Turn a stored photo path into a URL a browser can load.

    - Absolute http(s) URLs (older documents stored download URLs) are
      returned unchanged.
    - Object keys are presigned; results are memoized for
      IMAGE_URL_TTL_SECONDS.

    Raises:
        ValueError: empty path
        ImageStorageError: if MinIO fails
    """
    if not path or not path.strip():
        raise ValueError("path is required")
    path = path.strip()
    if path.startswith(("http://", "https://")):
        return path

    cached = _url_cache.get(path)
    if cached is not None:
        return cached

    ttl = current_app.config["IMAGE_URL_TTL_SECONDS"]
    client = get_minio_client()
    try:
        url = client.presigned_get_object(
            current_app.config["MINIO_BUCKET"],
            path,
            expires=timedelta(seconds=max(ttl * 2, 60)),
        )
    except (S3Error, TransportError) as e:
        current_app.logger.exception("Failed to resolve image url for %s", path)
        raise ImageStorageError(f"Failed to resolve image url: {e}")

    _url_cache.put(path, url, ttl)
    return url


def clear_url_cache() -> None:
    _url_cache.clear()
