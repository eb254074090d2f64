"""Data models for role assumption.

RoleAssumptionRequest is the validated input of the session manager and
CredentialSet is its output. CredentialSet also owns the conversion to and
from the STS-shaped JSON document persisted in the credential cache.
"""

import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_DURATION_SECONDS = 3600
MIN_DURATION_SECONDS = 900
MAX_DURATION_SECONDS = 43200

# Cached credentials are reused only while more than this many seconds remain
EXPIRY_MARGIN_SECONDS = 300

SESSION_NAME_PREFIX = "assumed-role-session"

ROLE_ARN_PATTERN = re.compile(r"^arn:aws[a-z-]*:iam::\d{12}:role/[\w+=,.@/-]+$")
SESSION_NAME_PATTERN = re.compile(r"^[\w+=,.@-]{2,64}$")

CREDENTIAL_FIELDS = ("AccessKeyId", "SecretAccessKey", "SessionToken")


class RequestValidationError(ValueError):
    """Raised when a role assumption request is missing or malformed."""


def default_session_name() -> str:
    """Process-unique session name, e.g. ``assumed-role-session-4242``."""
    return f"{SESSION_NAME_PREFIX}-{os.getpid()}"


class RoleAssumptionRequest(BaseModel):
    """Parameters for a single role assumption.

    Attributes:
        role_arn: ARN of the IAM role to assume
        mfa_serial: MFA device ARN (auto-detected when omitted)
        external_id: External ID required by some cross-account trust policies
        duration_seconds: Requested session duration
        session_name: RoleSessionName recorded in CloudTrail
        source_profile: AWS CLI profile providing the source credentials
        region: AWS region for STS and IAM clients
        use_cache: Read and write the local credential cache
    """

    model_config = ConfigDict(frozen=True)

    role_arn: str
    mfa_serial: Optional[str] = None
    external_id: Optional[str] = None
    duration_seconds: int = Field(DEFAULT_DURATION_SECONDS, ge=MIN_DURATION_SECONDS, le=MAX_DURATION_SECONDS)
    session_name: str = Field(default_factory=default_session_name)
    source_profile: Optional[str] = None
    region: Optional[str] = None
    use_cache: bool = True

    @field_validator("role_arn")
    @classmethod
    def validate_role_arn(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Role ARN is required")
        if not ROLE_ARN_PATTERN.match(v):
            raise ValueError(f"Invalid role ARN: {v}. Expected arn:aws:iam::<account-id>:role/<name>")
        return v

    @field_validator("session_name")
    @classmethod
    def validate_session_name(cls, v: str) -> str:
        if not SESSION_NAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid session name: {v}. Use 2-64 characters from letters, digits and +=,.@_-"
            )
        return v

    @field_validator("mfa_serial", "external_id", "source_profile", "region")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @classmethod
    def build(cls, **fields: Any) -> "RoleAssumptionRequest":
        """Build a request, dropping unset (None) fields so defaults apply.

        Raises:
            RequestValidationError: If any field fails validation
        """
        try:
            return cls(**{key: value for key, value in fields.items() if value is not None})
        except ValidationError as e:
            messages = "; ".join(_format_error(error) for error in e.errors())
            raise RequestValidationError(messages) from e


def _format_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    if error.get("type") == "missing":
        return f"{location} is required"
    return f"{location}: {message}" if location else message


def parse_expiration(value: Any) -> datetime:
    """Parse an expiration timestamp into a timezone-aware datetime.

    Accepts datetime objects (as returned by boto3) and ISO-8601 strings,
    including the ``Z`` suffix. Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a recognizable timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"Unsupported expiration value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CredentialSet:
    """Temporary security credentials returned by a role assumption."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime
    # Timestamp text as read from a cache file, emitted unchanged
    expiration_text: Optional[str] = field(default=None, compare=False, repr=False)

    def __repr__(self) -> str:
        # Keep secrets out of tracebacks and log lines
        return f"CredentialSet(access_key_id={self.access_key_id!r}, expiration={self.expiration_iso()!r})"

    def expiration_iso(self) -> str:
        return self.expiration_text or self.expiration.isoformat()

    def time_remaining(self, now: Optional[datetime] = None) -> timedelta:
        now = now or datetime.now(timezone.utc)
        return self.expiration - now

    def is_fresh(self, now: Optional[datetime] = None, margin_seconds: int = EXPIRY_MARGIN_SECONDS) -> bool:
        """True while more than ``margin_seconds`` remain before expiration."""
        return self.time_remaining(now) > timedelta(seconds=margin_seconds)

    @classmethod
    def from_sts_credentials(cls, credentials: Dict[str, Any]) -> "CredentialSet":
        """Build from the ``Credentials`` member of an STS AssumeRole response.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a key field is not a non-empty string or the expiration cannot be parsed
        """
        for name in CREDENTIAL_FIELDS:
            value = credentials[name]
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} must be a non-empty string")

        raw_expiration = credentials["Expiration"]
        return cls(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=parse_expiration(raw_expiration),
            expiration_text=raw_expiration.strip() if isinstance(raw_expiration, str) else None,
        )

    def to_sts_credentials(self) -> Dict[str, str]:
        return {
            "AccessKeyId": self.access_key_id,
            "SecretAccessKey": self.secret_access_key,
            "SessionToken": self.session_token,
            "Expiration": self.expiration_iso(),
        }
