"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
Collaborators (mailer, Shopify client) receive these values through their
constructors at startup; business logic never reads the environment.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

APP_VERSION = "0.1.0"

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").upper()

# Comma-separated list; "*" allows any storefront origin.
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "device_guard.db"))

# ── Device limit ──────────────────────────────────────────────────────────

# Limit given to accounts on first sight, unless the storefront settings
# override it with `max_devices`.
DEFAULT_DEVICE_LIMIT: int = int(os.getenv("DEFAULT_DEVICE_LIMIT", "2"))

# ── OTP ───────────────────────────────────────────────────────────────────

OTP_TTL_MINUTES: int = int(os.getenv("OTP_TTL_MINUTES", "10"))

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "465"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "noreply@deviceguard.local")
SMTP_FROM_NAME: str = os.getenv("SMTP_FROM_NAME", "Device Guard")
# Port 465 talks implicit TLS; anything else upgrades with STARTTLS.
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Set to "false" to force console-only mode even when SMTP credentials are present.
_SMTP_ENABLED_OVERRIDE: str = os.getenv("SMTP_ENABLED", "auto")


def smtp_enabled() -> bool:
    """True when SMTP should actually send emails.

    Controlled by SMTP_ENABLED env var:
      • "auto" (default) - send if credentials are configured
      • "true"  - always send (will fail if credentials are missing)
      • "false" - never send, log to console instead
    """
    if _SMTP_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMTP_ENABLED_OVERRIDE.lower() == "true":
        return True
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)


# ── Shopify Admin API ─────────────────────────────────────────────────────

SHOPIFY_SHOP: str = os.getenv("SHOPIFY_SHOP", "")  # e.g. my-store.myshopify.com
SHOPIFY_ADMIN_TOKEN: str = os.getenv("SHOPIFY_ADMIN_TOKEN", "")
SHOPIFY_API_VERSION: str = os.getenv("SHOPIFY_API_VERSION", "2025-01")
SHOPIFY_TIMEOUT: float = float(os.getenv("SHOPIFY_TIMEOUT", "15"))

# Tag written to the customer once their email is verified.
VERIFIED_TAG: str = os.getenv("VERIFIED_TAG", "email_verified")
