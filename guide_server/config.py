"""Runtime settings read from the environment (and ``.env`` via python-dotenv)."""

import os
from datetime import timedelta
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


class Settings(BaseModel):
    razorpay_key_id: str
    razorpay_key_secret: str

    # Single product: price and file are fixed here, never sent by the client
    product_name: str = "20 Laws of Feminine Power Guide"
    price_minor_units: int = 19900
    currency: str = "INR"
    pdf_path: Path = Path("files") / "guide.pdf"
    download_name: str = "20-Laws-of-Feminine-Power-Guide.pdf"

    token_ttl_hours: float = 24
    sweep_interval_seconds: float = 60 * 60
    accept_authorized: bool = False
    retry_after_seconds: int = 2

    cors_allow_origins: List[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(hours=self.token_ttl_hours)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Raises ``RuntimeError`` when the gateway credentials are missing: the
        server must not start without a configured gateway.
        """
        load_dotenv()
        key_id = (os.getenv("RAZORPAY_KEY_ID") or "").strip()
        key_secret = (os.getenv("RAZORPAY_KEY_SECRET") or "").strip()
        if not key_id or not key_secret:
            raise RuntimeError(
                "Razorpay keys missing. Set RAZORPAY_KEY_ID and "
                "RAZORPAY_KEY_SECRET in .env before launching."
            )

        origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
        return cls(
            razorpay_key_id=key_id,
            razorpay_key_secret=key_secret,
            product_name=os.getenv("GUIDE_PRODUCT_NAME", cls.model_fields["product_name"].default),
            price_minor_units=int(os.getenv("GUIDE_PRICE_MINOR_UNITS", "19900")),
            currency=os.getenv("GUIDE_CURRENCY", "INR"),
            pdf_path=Path(os.getenv("GUIDE_PDF_PATH", str(Path("files") / "guide.pdf"))),
            download_name=os.getenv("GUIDE_DOWNLOAD_NAME", cls.model_fields["download_name"].default),
            token_ttl_hours=float(os.getenv("DOWNLOAD_TOKEN_TTL_HOURS", "24")),
            sweep_interval_seconds=float(os.getenv("SWEEP_INTERVAL_SECONDS", "3600")),
            accept_authorized=_env_bool("ACCEPT_AUTHORIZED_PAYMENTS", False),
            retry_after_seconds=int(os.getenv("PAYMENT_RETRY_AFTER_SECONDS", "2")),
            cors_allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
