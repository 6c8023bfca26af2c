# storefront/config.py
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load .env but don't override existing environment variables
load_dotenv(".env", override=False)

DEFAULT_BUCKET = "products"


def _parse_emails(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(e.strip().lower() for e in raw.split(",") if e.strip())


def _parse_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number (got: {raw!r})")


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_key: Optional[str] = None
    # None means "not configured"; upload falls back to DEFAULT_BUCKET,
    # upload-url falls back to the first bucket the provider lists.
    storage_bucket: Optional[str] = None
    admin_emails: Tuple[str, ...] = field(default_factory=tuple)
    shop_phone: str = ""
    http_timeout: float = 10.0
    log_level: str = "INFO"
    log_mask_secrets: bool = True
    cart_storage_path: str = ".proteina/storage.json"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key and self.supabase_anon_key)


def load_settings() -> Settings:
    """Build Settings from the process environment (after .env)."""
    url = os.environ.get("SUPABASE_URL") or None
    return Settings(
        supabase_url=url.rstrip("/") if url else None,
        supabase_anon_key=os.environ.get("SUPABASE_ANON_KEY") or None,
        supabase_service_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or None,
        storage_bucket=os.environ.get("SUPABASE_STORAGE_BUCKET") or None,
        admin_emails=_parse_emails(os.environ.get("ADMIN_EMAILS")),
        shop_phone=os.environ.get("SHOP_PHONE", ""),
        http_timeout=_parse_float("HTTP_TIMEOUT_SECONDS", "10"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_mask_secrets=os.environ.get("LOG_MASK_SECRETS", "true") == "true",
        cart_storage_path=os.environ.get("CART_STORAGE_PATH", ".proteina/storage.json"),
    )
