from __future__ import annotations

import os
from dataclasses import dataclass

def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default) not in ("0", "false", "False")

@dataclass(frozen=True)
class Settings:
    # AWS
    aws_region: str = os.environ.get("AWS_REGION", "us-east-1")
    aws_access_key_id: str = os.environ.get("AWS_ACCESS_KEY_ID", "")
    aws_secret_access_key: str = os.environ.get("AWS_SECRET_ACCESS_KEY", "")

    # DynamoDB
    users_table_name: str = os.environ.get("USERS_TABLE_NAME", "users")
    users_email_index: str = os.environ.get("USERS_EMAIL_INDEX", "email-index")
    ddb_endpoint_url: str = os.environ.get("DDB_ENDPOINT_URL", "")

    # Profile image storage
    profile_image_bucket: str = os.environ.get("PROFILE_IMAGE_BUCKET", "")
    profile_image_prefix: str = os.environ.get("PROFILE_IMAGE_PREFIX", "").strip("/")
    s3_endpoint_url: str = os.environ.get("S3_ENDPOINT_URL", "").rstrip("/")
    s3_public_base_url: str = os.environ.get("S3_PUBLIC_BASE_URL", "").rstrip("/")
    profile_image_max_bytes: int = int(os.environ.get("PROFILE_IMAGE_MAX_BYTES", str(5 * 1024 * 1024)))
    # Delete the replaced object only after the new reference is saved
    profile_image_defer_delete: bool = _flag("PROFILE_IMAGE_DEFER_DELETE", "0")

    # Local storage fallback (no bucket configured)
    local_upload_dir: str = os.environ.get("LOCAL_UPLOAD_DIR", "")
    public_base_url: str = os.environ.get("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")

    # Passwords
    bcrypt_rounds: int = int(os.environ.get("BCRYPT_ROUNDS", "10"))

    # Bearer tokens
    jwt_secret: str = os.environ.get("JWT_SECRET", "")
    jwt_algorithm: str = os.environ.get("JWT_ALGORITHM", "HS256")
    jwt_audience: str = os.environ.get("JWT_AUDIENCE", "")
    jwt_issuer: str = os.environ.get("JWT_ISSUER", "")

    # Observability
    log_level: str = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_json: bool = _flag("LOG_JSON", "1")
    audit_log_enabled: bool = _flag("AUDIT_LOG_ENABLED", "1")
    metrics_enabled: bool = _flag("METRICS_ENABLED", "1")

    cors_origins: str = os.environ.get("CORS_ORIGINS", "*")


S = Settings()
