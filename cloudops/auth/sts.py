"""boto3-backed identity gateway for STS and IAM.

Wraps the two external calls the session manager needs and maps botocore
exceptions onto RoleAssumptionError so callers never handle botocore types.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .models import CredentialSet

logger = structlog.get_logger(__name__)


class RoleAssumptionError(Exception):
    """Raised when STS rejects or cannot complete an AssumeRole call.

    The message is the service's own error text, unmodified.
    """

    def __init__(self, message: str, role_arn: str = "", error_code: str = ""):
        super().__init__(message)
        self.message = message
        self.role_arn = role_arn
        self.error_code = error_code


@dataclass(frozen=True)
class AssumeRoleParams:
    """Arguments for a single STS AssumeRole call."""

    role_arn: str
    session_name: str
    duration_seconds: int
    external_id: Optional[str] = None
    mfa_serial: Optional[str] = None
    token_code: Optional[str] = field(default=None, repr=False)

    def to_api_kwargs(self) -> dict:
        kwargs = {
            "RoleArn": self.role_arn,
            "RoleSessionName": self.session_name,
            "DurationSeconds": self.duration_seconds,
        }
        if self.external_id:
            kwargs["ExternalId"] = self.external_id
        if self.mfa_serial:
            kwargs["SerialNumber"] = self.mfa_serial
            kwargs["TokenCode"] = self.token_code or ""
        return kwargs


@dataclass(frozen=True)
class AssumeRoleResult:
    credentials: CredentialSet
    assumed_role_user: Optional[dict] = None


class IdentityGateway(Protocol):
    """External identity service used by the session manager."""

    def find_mfa_device(self) -> Optional[str]:
        ...

    def assume_role(self, params: AssumeRoleParams) -> AssumeRoleResult:
        ...


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        return str(error)
    return str(error) or type(error).__name__


class Boto3IdentityGateway:
    """IdentityGateway backed by a boto3 session.

    Args:
        profile: AWS CLI profile holding the source credentials
        region: AWS region for the STS and IAM clients
        session: Pre-built boto3 session (overrides profile/region)
    """

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        session: Optional[boto3.Session] = None,
    ):
        self.profile = profile
        self.region = region
        self._session = session

    @property
    def session(self) -> boto3.Session:
        if self._session is None:
            self._session = boto3.Session(profile_name=self.profile, region_name=self.region)
        return self._session

    def find_mfa_device(self) -> Optional[str]:
        """Return the serial of the caller's first registered MFA device.

        Any failure (no IAM permission, root credentials, network) yields None.
        """
        try:
            iam = self.session.client("iam")
            response = iam.list_mfa_devices()
        except (BotoCoreError, ClientError) as e:
            logger.debug("MFA device lookup failed", error=_error_message(e), error_type=type(e).__name__)
            return None

        devices = response.get("MFADevices") or []
        if not devices:
            return None
        return devices[0].get("SerialNumber") or None

    def assume_role(self, params: AssumeRoleParams) -> AssumeRoleResult:
        """Call STS AssumeRole.

        Raises:
            RoleAssumptionError: With the service's error message if the call fails
        """
        try:
            sts = self.session.client("sts")
            response = sts.assume_role(**params.to_api_kwargs())
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            raise RoleAssumptionError(_error_message(e), role_arn=params.role_arn, error_code=error_code) from e
        except BotoCoreError as e:
            raise RoleAssumptionError(_error_message(e), role_arn=params.role_arn) from e

        try:
            credentials = CredentialSet.from_sts_credentials(response["Credentials"])
        except (KeyError, ValueError) as e:
            raise RoleAssumptionError(
                f"Unexpected AssumeRole response: missing or invalid {e}", role_arn=params.role_arn
            ) from e

        return AssumeRoleResult(credentials=credentials, assumed_role_user=response.get("AssumedRoleUser"))
