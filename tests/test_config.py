# tests/test_config.py
import logging

import pytest

from storefront.config import load_settings
from storefront.logging_config import SecretMaskingFilter


def test_load_settings(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
    monkeypatch.setenv("ADMIN_EMAILS", " Admin@Example.com, ops@example.com ,")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.delenv("SUPABASE_STORAGE_BUCKET", raising=False)

    s = load_settings()
    assert s.supabase_url == "https://abc.supabase.co"
    assert s.supabase_configured
    assert s.admin_emails == ("admin@example.com", "ops@example.com")
    assert s.http_timeout == 2.5
    assert s.storage_bucket is None


def test_unconfigured_supabase(monkeypatch):
    for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_ROLE_KEY", "ADMIN_EMAILS"):
        monkeypatch.delenv(name, raising=False)
    s = load_settings()
    assert not s.supabase_configured
    assert s.admin_emails == ()


def test_bad_timeout_names_variable(monkeypatch):
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "soon")
    with pytest.raises(ValueError, match="HTTP_TIMEOUT_SECONDS"):
        load_settings()


def test_secret_masking_filter():
    record = logging.LogRecord("t", logging.INFO, __file__, 1,
                               "Authorization: Bearer eyJhbGciOi.abc-def denied for %s", ("ana@example.com",), None)
    SecretMaskingFilter().filter(record)
    message = record.getMessage()
    assert "eyJhbGciOi" not in message
    assert "[REDACTED_BEARER_TOKEN]" in message
    assert "[REDACTED_EMAIL]" in message
