"""
Runtime configuration for the reminder engine.

Settings are read from the environment (and a local .env file) exactly once,
validated, and then passed explicitly to everything that needs them.

Environment variables:
    TIMEZONE                 IANA zone all date decisions are made in (America/Sao_Paulo)
    NOTIFICATION_TIMING      Default timing policy (1-day)
    NOTIFICATION_TIME        Earliest local send time, HH:MM (09:00)
    SEND_WINDOW_MINUTES      Tolerance around NOTIFICATION_TIME for --scheduled runs (30)
    NOTIFICATIONS_ENABLED    Set to 'false' to turn every run into a no-op
    RATE_LIMIT_DELAY         Pause between sends, in milliseconds (2000)
    REQUEST_TIMEOUT          Transport request timeout, in milliseconds (30000)
    REMINDER_TRANSPORT       'resend' (email) or 'whatsapp' (Twilio)
    NOTIFICATION_TO          Where reminders are delivered
"""

import os
import re
from typing import Literal, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from models import TimingPolicy
from shared.errors import ConfigError

SEND_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_send_time(value: str) -> int:
    """
    Convert a zero-padded 'HH:MM' string into minutes since midnight.

    Raises:
        ValueError: If the value is not a valid 24-hour HH:MM time
    """
    match = SEND_TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"send time must be HH:MM (24-hour), got {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


class ReminderSettings(BaseModel):
    """Validated configuration for one reminder process."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    timezone: str = "America/Sao_Paulo"
    default_timing: TimingPolicy = TimingPolicy.ONE_DAY
    send_time: str = "09:00"
    send_window_minutes: int = Field(30, ge=0, le=720)
    notifications_enabled: bool = True
    inter_send_delay_seconds: float = Field(2.0, ge=0)
    request_timeout_seconds: float = Field(30.0, gt=0)

    transport: Literal["resend", "whatsapp"] = "resend"
    recipient: str = Field(..., min_length=1)
    resend_api_key: str | None = None
    from_email: str = "birthday-reminders@example.com"
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None

    supabase_url: str | None = None
    supabase_key: str | None = None
    birthdays_table: str = "birthdays"

    log_dir: str | None = None
    test_mode: bool = False
    force_send: bool = False

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone {value!r}")
        return value

    @field_validator("send_time")
    @classmethod
    def _valid_send_time(cls, value: str) -> str:
        parse_send_time(value)
        return value

    @model_validator(mode="after")
    def _transport_credentials(self) -> "ReminderSettings":
        if self.transport == "resend" and not self.resend_api_key:
            raise ValueError("RESEND_API_KEY is required for the resend transport")

        if self.transport == "whatsapp":
            missing = [
                name
                for name, value in (
                    ("TWILIO_ACCOUNT_SID", self.twilio_account_sid),
                    ("TWILIO_AUTH_TOKEN", self.twilio_auth_token),
                    ("TWILIO_FROM_NUMBER", self.twilio_from_number),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"missing for the whatsapp transport: {', '.join(missing)}")
            if not self.twilio_account_sid.startswith("AC"):
                raise ValueError("TWILIO_ACCOUNT_SID must start with 'AC'")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def send_time_minutes(self) -> int:
        return parse_send_time(self.send_time)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ReminderSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (a .env file is only
                loaded when reading the real environment)

        Returns:
            Validated ReminderSettings

        Raises:
            ConfigError: If any value is missing or invalid
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        raw = {
            "timezone": environ.get("TIMEZONE"),
            "default_timing": environ.get("NOTIFICATION_TIMING"),
            "send_time": environ.get("NOTIFICATION_TIME"),
            "send_window_minutes": environ.get("SEND_WINDOW_MINUTES"),
            "notifications_enabled": _enabled_flag(environ.get("NOTIFICATIONS_ENABLED")),
            "inter_send_delay_seconds": _millis_to_seconds(environ.get("RATE_LIMIT_DELAY")),
            "request_timeout_seconds": _millis_to_seconds(environ.get("REQUEST_TIMEOUT")),
            "transport": environ.get("REMINDER_TRANSPORT"),
            "recipient": environ.get("NOTIFICATION_TO"),
            "resend_api_key": environ.get("RESEND_API_KEY"),
            "from_email": environ.get("NOTIFICATION_FROM_EMAIL"),
            "twilio_account_sid": environ.get("TWILIO_ACCOUNT_SID"),
            "twilio_auth_token": environ.get("TWILIO_AUTH_TOKEN"),
            "twilio_from_number": environ.get("TWILIO_FROM_NUMBER"),
            "supabase_url": environ.get("SUPABASE_URL"),
            "supabase_key": environ.get("SUPABASE_SERVICE_KEY"),
            "birthdays_table": environ.get("BIRTHDAYS_TABLE"),
            "log_dir": environ.get("LOG_DIR"),
            "test_mode": _env_flag(environ.get("TEST_MODE")),
            "force_send": _env_flag(environ.get("FORCE_SEND")),
        }
        # Unset variables fall back to the field defaults
        values = {key: value for key, value in raw.items() if value is not None}

        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {problems}") from e


def _env_flag(value: str | None) -> bool | None:
    if not value:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _enabled_flag(value: str | None) -> bool | None:
    # Anything but an explicit "false" keeps notifications on
    if not value:
        return None
    return value.strip().lower() != "false"


def _millis_to_seconds(value: str | None) -> float | str | None:
    if value is None or value == "":
        return None
    try:
        return int(value) / 1000
    except ValueError:
        # Let pydantic report the bad value
        return value
