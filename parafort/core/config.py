# parafort/core/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv, find_dotenv

# root .env first (if present); real environment always wins
load_dotenv(find_dotenv(usecwd=True), override=False)

DEFAULT_RULES_PATH = Path(__file__).resolve().parent.parent / "services" / "compliance_rules.json"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip().lstrip("-").isdigit():
        return default
    return int(raw)


def _env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(p.strip().lower() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration read from the environment.

    Channel credentials are optional: a missing SendGrid/Telnyx key degrades the
    channel to log-only delivery instead of failing startup.
    """

    database_url: str = "sqlite:///./parafort.db"
    rules_path: Path = DEFAULT_RULES_PATH
    notify_channels: Tuple[str, ...] = ("email", "dashboard")
    notify_max_batch: int = 200
    new_entity_scan_days: int = 7

    sendgrid_api_key: Optional[str] = None
    mail_from: str = "compliance@parafort.com"
    mail_from_name: str = "ParaFort Compliance"

    telnyx_api_key: Optional[str] = None
    telnyx_phone_number: Optional[str] = None
    telnyx_messaging_profile_id: Optional[str] = None

    client_url: str = "https://your-domain.com"

    app_timezone: Optional[str] = None
    scheduler_hour: int = 9
    scheduler_minute: int = 0
    enable_scheduler: bool = True
    enable_create_all: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        rules = os.getenv("COMPLIANCE_RULES_PATH")
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./parafort.db"),
            rules_path=Path(rules) if rules else DEFAULT_RULES_PATH,
            notify_channels=_env_list("NOTIFY_CHANNELS", "email,dashboard"),
            notify_max_batch=_env_int("NOTIFY_MAX_BATCH", 200),
            new_entity_scan_days=_env_int("NEW_ENTITY_SCAN_DAYS", 7),
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY") or None,
            mail_from=os.getenv("MAIL_FROM", "compliance@parafort.com"),
            mail_from_name=os.getenv("MAIL_FROM_NAME", "ParaFort Compliance"),
            telnyx_api_key=os.getenv("TELNYX_API_KEY") or None,
            telnyx_phone_number=os.getenv("TELNYX_PHONE_NUMBER") or None,
            telnyx_messaging_profile_id=os.getenv("TELNYX_MESSAGING_PROFILE_ID") or None,
            client_url=os.getenv("CLIENT_URL", "https://your-domain.com"),
            app_timezone=os.getenv("APP_TIMEZONE") or None,
            scheduler_hour=_env_int("APP_SCHEDULER_HOUR", 9),
            scheduler_minute=_env_int("APP_SCHEDULER_MINUTE", 0),
            enable_scheduler=_env_flag("ENABLE_SCHEDULER", "1"),
            enable_create_all=_env_flag("ENABLE_CREATE_ALL", "1"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
