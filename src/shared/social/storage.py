"""Object storage for post images.

Two backends share the same three calls (upload, public_url, delete):

- LocalImageStorage writes under POST_IMAGES_DIR and is served by the app at
  /uploads/posts (development, single dyno).
- SupabaseImageStorage puts objects in a public Supabase Storage bucket.

STORAGE_BACKEND picks one; get_image_storage() is the FastAPI dependency.
"""

import os
import logging
from functools import lru_cache
from pathlib import Path

LOCAL_URL_PREFIX = "/uploads/posts"


def default_upload_dir() -> Path:
    if os.environ.get("POST_IMAGES_DIR"):
        return Path(os.environ["POST_IMAGES_DIR"])
    if os.environ.get("DYNO"):  # Heroku (ephemeral filesystem)
        return Path("/tmp/uploads/posts")
    return Path("uploads/posts")


def public_image_url(url: str) -> str:
    """Prefix app-served image paths with PUBLIC_BASE_URL when one is configured."""
    base_url = os.environ.get("PUBLIC_BASE_URL", "").rstrip("/")
    if base_url and url.startswith("/"):
        return f"{base_url}{url}"
    return url


class StorageError(RuntimeError):
    """Raised when the storage service rejects an upload or delete."""


class LocalImageStorage:
    """Stores images on the local filesystem."""

    def __init__(self, upload_dir: Path, url_prefix: str = LOCAL_URL_PREFIX):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, key: str) -> Path:
        # Keys are generated server-side, but never let one escape upload_dir
        path = (self.upload_dir / key).resolve()
        if self.upload_dir.resolve() not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        return key

    def public_url(self, key: str) -> str:
        """Relative URL; routes make it absolute against the request host."""
        return f"{self.url_prefix}/{key}"

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e


class SupabaseImageStorage:
    """Stores images in a public Supabase Storage bucket."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.storage.from_(self.bucket).upload(
                path=key,
                file=data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            raise StorageError(f"Supabase upload failed for {key}: {e}") from e
        return key

    def public_url(self, key: str) -> str:
        return self.client.storage.from_(self.bucket).get_public_url(key)

    def delete(self, key: str) -> None:
        try:
            self.client.storage.from_(self.bucket).remove([key])
        except Exception as e:
            raise StorageError(f"Supabase delete failed for {key}: {e}") from e


def create_storage_from_env():
    backend = os.environ.get("STORAGE_BACKEND", "local").lower()

    if backend == "supabase":
        from supabase import create_client

        supabase_url = os.environ.get("SUPABASE_URL")
        supabase_key = os.environ.get("SUPABASE_SERVICE_KEY")
        if not supabase_url or not supabase_key:
            raise RuntimeError(
                "STORAGE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY."
            )
        bucket = os.environ.get("SUPABASE_STORAGE_BUCKET", "posts")
        logging.info(f"Using Supabase storage bucket '{bucket}'")
        return SupabaseImageStorage(create_client(supabase_url, supabase_key), bucket)

    if backend != "local":
        raise RuntimeError(f"Unknown STORAGE_BACKEND: {backend}")

    upload_dir = default_upload_dir()
    upload_dir.mkdir(parents=True, exist_ok=True)
    logging.info(f"Using local image storage at {upload_dir}")
    return LocalImageStorage(upload_dir)


@lru_cache
def get_image_storage():
    """Return the process-wide storage backend (FastAPI dependency)."""
    return create_storage_from_env()
