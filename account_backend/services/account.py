from __future__ import annotations

from typing import Any, Dict, List, Optional

import bcrypt
import structlog

from account_backend.core.errors import ConflictError, NotFoundError, ValidationError
from account_backend.core.normalize import clean_str, is_valid_email, normalize_email
from account_backend.core.settings import S
from account_backend.metrics import ACCOUNTS_DELETED, USERS_REGISTERED
from account_backend.services.profile_image import get_coordinator
from account_backend.services.users import get_user_store, public_user

log = structlog.get_logger(__name__)

MIN_NAME_LEN = 2
MIN_PASSWORD_LEN = 6
BCRYPT_MAX_BYTES = 72


def _bcrypt_input(password: str) -> bytes:
    # bcrypt ignores everything past 72 bytes; newer releases raise instead
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=S.bcrypt_rounds)
    return bcrypt.hashpw(_bcrypt_input(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_bcrypt_input(password), password_hash.encode("ascii"))


def validate_registration(name: Optional[str], email: Optional[str], password: Optional[str]) -> List[Dict[str, str]]:
    errors: List[Dict[str, str]] = []

    name = clean_str(name)
    if not name:
        errors.append({"field": "name", "message": "Name is required."})
    elif len(name) < MIN_NAME_LEN:
        errors.append({"field": "name", "message": f"Name must be at least {MIN_NAME_LEN} characters."})

    email = clean_str(email)
    if not email:
        errors.append({"field": "email", "message": "Email is required."})
    elif not is_valid_email(email):
        errors.append({"field": "email", "message": "Invalid email format."})

    if not password:
        errors.append({"field": "password", "message": "Password is required."})
    elif len(password) < MIN_PASSWORD_LEN:
        errors.append({"field": "password", "message": f"Password must be at least {MIN_PASSWORD_LEN} characters."})

    return errors


def register(name: Optional[str], email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
    errors = validate_registration(name, email, password)
    if errors:
        raise ValidationError(errors=errors)

    store = get_user_store()
    email = normalize_email(email)
    if store.find_by_email(email):
        raise ConflictError("Email is already registered.")

    item = store.create(name=clean_str(name), email=email, password_hash=hash_password(password))
    USERS_REGISTERED.inc()
    log.info("user_registered", user_id=item["user_id"])
    return public_user(item)


def get_profile(user_id: str) -> Dict[str, Any]:
    item = get_user_store().get(user_id)
    if not item:
        raise NotFoundError()
    return public_user(item)


def update_profile(user_id: str, name: Optional[str]) -> Dict[str, Any]:
    name = clean_str(name)
    if not name:
        raise ValidationError("Name is required.")
    store = get_user_store()
    if not store.get(user_id):
        raise NotFoundError()
    return public_user(store.update_fields(user_id, name=name))


def delete_account(user_id: str) -> None:
    get_coordinator().cascade_delete(user_id)
    ACCOUNTS_DELETED.inc()
