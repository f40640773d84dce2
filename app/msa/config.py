import os
from dataclasses import dataclass

from werkzeug.security import generate_password_hash

DEFAULT_SECRET_KEY = "change-me"
DEFAULT_ADMIN_PASSWORD = "change-me"


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    storage_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    admin_session_store: str
    admin_username: str
    admin_password_hash: str
    admin_password_is_default: bool
    admin_notify_email: str

    emailjs_service_id: str
    emailjs_template_id: str
    emailjs_public_key: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _admin_password_hash() -> tuple[str, bool]:
    """Stored reference for the admin password; plaintext env values are hashed here."""
    explicit = _getenv("ADMIN_PASSWORD_HASH")
    if explicit:
        return explicit, False
    password = os.environ.get("ADMIN_PASSWORD") or DEFAULT_ADMIN_PASSWORD
    return generate_password_hash(password), password == DEFAULT_ADMIN_PASSWORD


def load_settings() -> Settings:
    password_hash, is_default = _admin_password_hash()
    return Settings(
        secret_key=_getenv("SECRET_KEY", DEFAULT_SECRET_KEY),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///msa.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_root=_getenv("STORAGE_ROOT", os.path.join(os.getcwd(), "storage")),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        admin_session_store=_getenv("ADMIN_SESSION_STORE", "cookie").lower(),
        admin_username=_getenv("ADMIN_USERNAME", "admin"),
        admin_password_hash=password_hash,
        admin_password_is_default=is_default,
        admin_notify_email=_getenv("ADMIN_NOTIFY_EMAIL", ""),
        emailjs_service_id=_getenv("EMAILJS_SERVICE_ID", ""),
        emailjs_template_id=_getenv("EMAILJS_TEMPLATE_ID", ""),
        emailjs_public_key=_getenv("EMAILJS_PUBLIC_KEY", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_ROOT": s.storage_root,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "ADMIN_SESSION_STORE": s.admin_session_store,
        "ADMIN_USERNAME": s.admin_username,
        "ADMIN_PASSWORD_HASH": s.admin_password_hash,
        "ADMIN_PASSWORD_IS_DEFAULT": s.admin_password_is_default,
        "ADMIN_NOTIFY_EMAIL": s.admin_notify_email,
        "EMAILJS_SERVICE_ID": s.emailjs_service_id,
        "EMAILJS_TEMPLATE_ID": s.emailjs_template_id,
        "EMAILJS_PUBLIC_KEY": s.emailjs_public_key,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # form posts only; no uploads (1MB)
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
