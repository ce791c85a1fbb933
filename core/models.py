"""
Data model for Smart Study Planner.

Wire payloads use snake_case; in-memory attributes are Python names.
Each from_dict() is the explicit wire -> memory mapping and raises
DecodeError when a required field is missing or has the wrong type.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

import config
from core.errors import DecodeError, StudyPlannerError

T = TypeVar("T")

_MISSING = object()


def _raw(payload: Any) -> str:
    """Render a payload for DecodeError diagnostics."""
    try:
        return json.dumps(payload)
    except (TypeError, ValueError):
        return repr(payload)


def _field(data: Dict[str, Any], keys: Tuple[str, ...], expected: Tuple[type, ...],
           default: Any = _MISSING, context: Any = None) -> Any:
    """
    Read one field, trying each wire name in order.

    bool is rejected where a number is expected (bool subclasses int).

    Raises:
        DecodeError: If the field is required and missing, or has the wrong type.
    """
    for key in keys:
        if key in data and data[key] is not None:
            value = data[key]
            wrong_bool = isinstance(value, bool) and bool not in expected
            if not isinstance(value, expected) or wrong_bool:
                raise DecodeError(f"Invalid value for '{key}'", raw_body=_raw(context or data))
            return value
    if default is _MISSING:
        raise DecodeError(f"Missing field '{keys[0]}'", raw_body=_raw(context or data))
    return default


def parse_timestamp(value: Any, context: Any = None) -> datetime:
    """Parse an ISO-8601 timestamp (a trailing 'Z' is accepted)."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise DecodeError("Invalid timestamp", raw_body=_raw(context or value))
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise DecodeError(f"Invalid timestamp '{value}'", raw_body=_raw(context or value))


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

@dataclass
class User:
    """An authenticated account. The token is never shown in repr."""

    id: str
    email: str
    name: str
    token: str = field(repr=False)
    notification_enabled: bool = True
    theme: str = config.THEME_LIGHT
    default_study_duration: float = config.DEFAULT_STUDY_DURATION_SECONDS  # seconds

    @classmethod
    def from_auth_payload(cls, payload: Any) -> "User":
        """
        Decode a login/registration response.

        The user object lives under "user"; the bearer token may sit inside
        it or next to it at the top level.
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("user"), dict):
            raise DecodeError("Invalid user data", raw_body=_raw(payload))
        user_data = payload["user"]
        token = user_data.get("token") or payload.get("token")
        return cls.from_dict(user_data, token=token, context=payload)

    @classmethod
    def from_dict(cls, data: Any, token: Optional[str] = None, context: Any = None) -> "User":
        """Decode a user object, applying defaults for optional fields."""
        if not isinstance(data, dict):
            raise DecodeError("Invalid user data", raw_body=_raw(context or data))
        if token is None:
            token = data.get("token")
        if not isinstance(token, str):
            raise DecodeError("Missing field 'token'", raw_body=_raw(context or data))

        theme = _field(data, ("theme",), (str,), config.THEME_LIGHT, context)
        if theme not in config.VALID_THEMES:
            raise DecodeError(f"Unknown theme '{theme}'", raw_body=_raw(context or data))

        return cls(
            id=_field(data, ("id",), (str,), context=context),
            email=_field(data, ("email",), (str,), context=context),
            name=_field(data, ("name",), (str,), context=context),
            token=token,
            notification_enabled=_field(
                data, ("notification_enabled", "notificationEnabled"), (bool,), True, context
            ),
            theme=theme,
            default_study_duration=float(_field(
                data, ("default_study_duration", "defaultStudyDuration"), (int, float),
                config.DEFAULT_STUDY_DURATION_SECONDS, context,
            )),
        )


@dataclass
class IdentityProfile:
    """Profile details a third-party identity provider may share."""

    name: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, "email": self.email}


@dataclass
class OTPResponse:
    message: str
    otp_id: str

    @classmethod
    def from_dict(cls, data: Any) -> "OTPResponse":
        if not isinstance(data, dict):
            raise DecodeError("Invalid OTP response", raw_body=_raw(data))
        return cls(
            message=_field(data, ("message",), (str,)),
            otp_id=_field(data, ("otp_id", "otpId"), (str,)),
        )


@dataclass
class VerifyOTPResponse:
    message: str
    reset_token: str = field(repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> "VerifyOTPResponse":
        if not isinstance(data, dict):
            raise DecodeError("Invalid OTP verification response", raw_body=_raw(data))
        return cls(
            message=_field(data, ("message",), (str,)),
            reset_token=_field(data, ("reset_token", "resetToken"), (str,)),
        )


@dataclass
class ResetPasswordResponse:
    message: str

    @classmethod
    def from_dict(cls, data: Any) -> "ResetPasswordResponse":
        if not isinstance(data, dict):
            raise DecodeError("Invalid password reset response", raw_body=_raw(data))
        return cls(message=_field(data, ("message",), (str,)))


# ---------------------------------------------------------------------------
# Study data
# ---------------------------------------------------------------------------

@dataclass
class StudyTask:
    """A study task owned by a user."""

    id: str
    user_id: str
    title: str
    subject: str
    deadline: datetime
    priority: int = config.PRIORITY_MEDIUM  # 1=low .. 3=high
    status: str = config.STATUS_PENDING
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_completed(self) -> bool:
        return self.status == config.STATUS_COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["deadline"] = self.deadline.isoformat()
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "StudyTask":
        if not isinstance(data, dict):
            raise DecodeError("Invalid task data", raw_body=_raw(data))
        status = _field(data, ("status",), (str,), config.STATUS_PENDING)
        if status not in (config.STATUS_PENDING, config.STATUS_COMPLETED):
            raise DecodeError(f"Unknown task status '{status}'", raw_body=_raw(data))
        created_at = data.get("created_at")
        return cls(
            id=_field(data, ("id", "task_id"), (str,)),
            user_id=_field(data, ("user_id",), (str,), ""),
            title=_field(data, ("title",), (str,)),
            subject=_field(data, ("subject",), (str,)),
            deadline=parse_timestamp(_field(data, ("deadline",), (str,)), data),
            priority=_field(data, ("priority",), (int,), config.PRIORITY_MEDIUM),
            status=status,
            notes=_field(data, ("notes",), (str,), None),
            created_at=parse_timestamp(created_at, data) if created_at else datetime.now(),
        )


@dataclass
class StudySession:
    """A scheduled or recorded study session."""

    session_id: str
    task_id: str
    start_time: datetime
    end_time: datetime
    duration: float  # seconds

    @classmethod
    def from_dict(cls, data: Any) -> "StudySession":
        if not isinstance(data, dict):
            raise DecodeError("Invalid session data", raw_body=_raw(data))
        return cls(
            session_id=_field(data, ("session_id", "id"), (str,)),
            task_id=_field(data, ("task_id",), (str,)),
            start_time=parse_timestamp(_field(data, ("start_time",), (str,)), data),
            end_time=parse_timestamp(_field(data, ("end_time",), (str,)), data),
            duration=float(_field(data, ("duration",), (int, float))),
        )


NOTIFICATION_TYPES = (
    "session_reminder",
    "deadline_approaching",
    "achievement_unlocked",
    "study_streak",
    "new_material",
    "group_meeting",
    "quiz_result",
    "custom",
)


@dataclass
class NotificationItem:
    id: str
    message: str
    timestamp: datetime
    is_read: bool
    type: str
    custom_value: Optional[str] = None  # Only set when type == "custom"

    @classmethod
    def from_dict(cls, data: Any) -> "NotificationItem":
        if not isinstance(data, dict):
            raise DecodeError("Invalid notification data", raw_body=_raw(data))

        # "type" is either a plain string or {"type": ..., "custom_value": ...}
        type_data = data.get("type")
        custom_value = None
        if isinstance(type_data, dict):
            kind = _field(type_data, ("type",), (str,), context=data)
            custom_value = _field(type_data, ("custom_value", "customValue"), (str,), None, data)
        else:
            kind = _field(data, ("type",), (str,))
        if kind not in NOTIFICATION_TYPES:
            raise DecodeError(f"Unknown notification type '{kind}'", raw_body=_raw(data))
        if kind == "custom" and custom_value is None:
            raise DecodeError("Custom notification without a value", raw_body=_raw(data))

        return cls(
            id=_field(data, ("id",), (str,)),
            message=_field(data, ("message",), (str,)),
            timestamp=parse_timestamp(_field(data, ("timestamp",), (str,)), data),
            is_read=_field(data, ("is_read",), (bool,), False),
            type=kind,
            custom_value=custom_value,
        )

    def time_ago(self, now: Optional[datetime] = None) -> str:
        """Short relative age, e.g. '2h ago'."""
        if now is None:
            now = datetime.now(timezone.utc) if self.timestamp.tzinfo else datetime.now()
        seconds = (now - self.timestamp).total_seconds()
        if seconds >= 86400:
            return f"{int(seconds // 86400)}d ago"
        if seconds >= 3600:
            return f"{int(seconds // 3600)}h ago"
        if seconds >= 60:
            return f"{int(seconds // 60)}m ago"
        return "Just now"


@dataclass
class FocusActivity:
    """Descriptor handed to the platform when enabling focus mode."""

    name: str
    icon: str = "book"
    color: str = "#4F46E5"


# ---------------------------------------------------------------------------
# Callback results
# ---------------------------------------------------------------------------

@dataclass
class Result(Generic[T]):
    """Outcome delivered to callback-style entry points."""

    value: Optional[T] = None
    error: Optional[StudyPlannerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value
