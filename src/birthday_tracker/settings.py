from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from birthday_tracker.date_logic import ALLOWED_LEAP_DAY_RULES
from birthday_tracker.models import DEFAULT_LEAP_DAY_RULE

DEFAULT_SPLASH_SECONDS = 2.0


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    telegram_allowed_user_id: int
    telegram_allowed_chat_id: int
    timezone: str | None = None
    leap_day_rule: str = DEFAULT_LEAP_DAY_RULE
    splash_seconds: float = DEFAULT_SPLASH_SECONDS


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise ValueError(f"Missing required environment variable: {name}")
    return value.strip()


def _optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_timezone(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {value}") from exc
    return value


def _parse_leap_day_rule(value: str | None) -> str:
    if value is None:
        return DEFAULT_LEAP_DAY_RULE
    rule = value.lower()
    if rule not in ALLOWED_LEAP_DAY_RULES:
        raise ValueError(f"LEAP_DAY_RULE must be one of {sorted(ALLOWED_LEAP_DAY_RULES)}")
    return rule


def _parse_splash_seconds(value: str | None) -> float:
    if value is None:
        return DEFAULT_SPLASH_SECONDS
    try:
        seconds = float(value)
    except ValueError as exc:
        raise ValueError("SPLASH_SECONDS must be a number") from exc
    if seconds < 0:
        raise ValueError("SPLASH_SECONDS must not be negative")
    return seconds


def load_settings() -> Settings:
    token = _required_env("TELEGRAM_BOT_TOKEN")
    allowed_user_id = int(_required_env("TELEGRAM_ALLOWED_USER_ID"))
    allowed_chat_id = int(_required_env("TELEGRAM_ALLOWED_CHAT_ID"))

    return Settings(
        telegram_bot_token=token,
        telegram_allowed_user_id=allowed_user_id,
        telegram_allowed_chat_id=allowed_chat_id,
        timezone=_parse_timezone(_optional_env("BIRTHDAY_TIMEZONE")),
        leap_day_rule=_parse_leap_day_rule(_optional_env("LEAP_DAY_RULE")),
        splash_seconds=_parse_splash_seconds(_optional_env("SPLASH_SECONDS")),
    )


def today_for(settings: Settings) -> date:
    if settings.timezone is None:
        return date.today()
    return datetime.now(ZoneInfo(settings.timezone)).date()
