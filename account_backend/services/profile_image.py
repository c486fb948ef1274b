"""
Keeps ``User.profile_image`` and the stored image object consistent.

A user's ``profile_image`` is either ``""`` or the reference of an object the
storage backend holds. Every operation here is a single linear sequence:
look the user up, best-effort delete the object being dropped, upload the
new one if any, write the new reference. Deletes that fail are logged and
counted but never abort the operation. Uploads that fail raise
``UploadError``. There are no retries and no locking: concurrent replaces
for the same user resolve last-write-wins and may orphan one uploaded object.
"""
from __future__ import annotations

import re
import secrets
import string
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Any, Dict, Optional

import structlog

from account_backend.core.errors import NotFoundError, UploadError, ValidationError
from account_backend.core.settings import S
from account_backend.core.time import now_ms
from account_backend.metrics import (
    PROFILE_IMAGES_CLEARED,
    PROFILE_IMAGES_UPLOADED,
    STORAGE_DELETE_FAILURES,
    STORAGE_UPLOAD_FAILURES,
)
from account_backend.services.storage import ObjectStorage, build_storage
from account_backend.services.users import UserStore, get_user_store

log = structlog.get_logger(__name__)

_KEY_ALPHABET = string.digits + string.ascii_lowercase
_EXT_RE = re.compile(r"^\.[a-z0-9]{1,10}$")


def _format_size(n: int) -> str:
    if n >= 1024 * 1024 and n % (1024 * 1024) == 0:
        return f"{n // (1024 * 1024)}MB"
    return f"{n} bytes"


def safe_extension(filename: Optional[str]) -> str:
    ext = PurePosixPath((filename or "").replace("\\", "/")).suffix.lower()
    return ext if _EXT_RE.match(ext) else ""


def generate_image_key(filename: Optional[str]) -> str:
    token = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(8))
    return f"{now_ms()}_{token}{safe_extension(filename)}"


class ProfileImageCoordinator:
    def __init__(
        self,
        store: UserStore,
        storage: ObjectStorage,
        *,
        max_bytes: int = S.profile_image_max_bytes,
        defer_old_delete: bool = S.profile_image_defer_delete,
    ) -> None:
        self.store = store
        self.storage = storage
        self.max_bytes = max_bytes
        self.defer_old_delete = defer_old_delete

    def _load(self, user_id: str) -> Dict[str, Any]:
        user = self.store.get(user_id)
        if not user:
            raise NotFoundError()
        return user

    def _discard(self, user_id: str, reference: str) -> None:
        key = self.storage.key_for(reference or "")
        if not key:
            return
        try:
            self.storage.delete(key)
        except Exception as exc:
            STORAGE_DELETE_FAILURES.inc()
            log.warning("profile_image_delete_failed", user_id=user_id, key=key, error=str(exc.__cause__ or exc))

    def validate(self, data: bytes, content_type: Optional[str]) -> None:
        if not data:
            raise ValidationError("No image was provided.")
        if len(data) > self.max_bytes:
            raise ValidationError(f"Image size cannot exceed {_format_size(self.max_bytes)}.")
        if not (content_type or "").lower().startswith("image/"):
            raise ValidationError("Only image files can be uploaded.")

    def replace(self, user_id: str, data: bytes, content_type: str, filename: Optional[str] = None) -> str:
        self.validate(data, content_type)
        user = self._load(user_id)
        old_reference = user.get("profile_image") or ""

        if not self.defer_old_delete:
            self._discard(user_id, old_reference)

        key = generate_image_key(filename)
        try:
            url = self.storage.upload(data, key, content_type)
        except Exception as exc:
            STORAGE_UPLOAD_FAILURES.inc()
            log.error("profile_image_upload_failed", user_id=user_id, key=key, error=str(exc.__cause__ or exc))
            if isinstance(exc, UploadError):
                raise
            raise UploadError() from exc

        self.store.update_fields(user_id, profile_image=url)
        PROFILE_IMAGES_UPLOADED.inc()
        log.info("profile_image_replaced", user_id=user_id, key=key, size=len(data))

        if self.defer_old_delete and old_reference != url:
            self._discard(user_id, old_reference)
        return url

    def clear(self, user_id: str) -> None:
        user = self._load(user_id)
        reference = user.get("profile_image") or ""
        if not reference:
            return
        self._discard(user_id, reference)
        self.store.update_fields(user_id, profile_image="")
        PROFILE_IMAGES_CLEARED.inc()
        log.info("profile_image_cleared", user_id=user_id)

    def cascade_delete(self, user_id: str) -> None:
        user = self._load(user_id)
        self._discard(user_id, user.get("profile_image") or "")
        self.store.delete(user_id)
        log.info("user_record_deleted", user_id=user_id)


@lru_cache(maxsize=1)
def get_coordinator() -> ProfileImageCoordinator:
    return ProfileImageCoordinator(get_user_store(), build_storage(S))
