from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or default).strip()


@dataclass(frozen=True)
class Settings:
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_plan_id: str = ""
    google_sheet_id: str = ""
    google_sheet_name: str = "Sheet1"
    google_credentials: str = ""
    cancellation_mode: str = "mark"  # "mark" | "clear"
    retention_days: int = 30
    port: int = 3001

    @staticmethod
    def from_env() -> "Settings":
        mode = _env("CANCELLATION_MODE", "mark").lower()
        if mode not in ("mark", "clear"):
            raise RuntimeError(f"CANCELLATION_MODE must be 'mark' or 'clear', got {mode!r}")

        return Settings(
            razorpay_key_id=_env("RAZORPAY_KEY_ID"),
            razorpay_key_secret=_env("RAZORPAY_KEY_SECRET"),
            razorpay_plan_id=_env("RAZORPAY_PLAN_ID"),
            google_sheet_id=_env("GOOGLE_SHEET_ID"),
            google_sheet_name=_env("GOOGLE_SHEET_NAME", "Sheet1") or "Sheet1",
            google_credentials=_env("GOOGLE_CREDENTIALS"),
            cancellation_mode=mode,
            retention_days=int(_env("RETENTION_DAYS", "30") or "30"),
            port=int(_env("PORT", "3001") or "3001"),
        )

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.razorpay_key_id) and bool(self.razorpay_key_secret)

    @property
    def sheet_configured(self) -> bool:
        return bool(self.google_sheet_id) and bool(self.google_credentials)


def cors_origins() -> list[str]:
    origins_env = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    return [o.strip().rstrip("/") for o in origins_env.split(",") if o.strip()]


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings

    if _settings is None:
        _settings = Settings.from_env()
    return _settings
