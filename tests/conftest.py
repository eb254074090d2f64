"""Pytest configuration and fixtures for test isolation."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import structlog

from cloudops.auth.models import CredentialSet
from cloudops.auth.sts import AssumeRoleParams, AssumeRoleResult, RoleAssumptionError


@pytest.fixture(scope="function", autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Automatically isolate each test from the host environment.

    Clears AWS, Kubernetes and cloudops variables that could leak from the
    developer's shell, and points HOME and XDG_CONFIG_HOME at a temporary
    directory so no test touches the real credential cache or settings.
    """
    env_vars_to_clear = [
        "AWS_PROFILE",
        "AWS_DEFAULT_PROFILE",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "KUBECONFIG",
        "CLOUDOPS_PROFILE",
        "CLOUDOPS_CACHE_DIR",
        "CLOUDOPS_LOG_LEVEL",
        "CLOUDOPS_LOG_FORMAT",
        "CLOUDOPS_BUILD_VERSION",
    ]

    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))

    yield

    # CLI tests bind logging handlers to CliRunner streams that are closed afterwards
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    structlog.reset_defaults()


@pytest.fixture
def sample_role_arn():
    """Sample IAM role ARN for testing."""
    return "arn:aws:iam::123456789012:role/Admin"


@pytest.fixture
def sample_mfa_serial():
    return "arn:aws:iam::123456789012:mfa/alice"


def make_credentials(expires_in: timedelta = timedelta(hours=1), suffix: str = "1") -> CredentialSet:
    """Build a CredentialSet expiring ``expires_in`` from now (second precision)."""
    expiration = (datetime.now(timezone.utc) + expires_in).replace(microsecond=0)
    return CredentialSet(
        access_key_id=f"ASIAEXAMPLEKEY{suffix}",
        secret_access_key=f"wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY{suffix}",
        session_token=f"FwoGZXIvYXdzEBMaDJ-token-{suffix}",
        expiration=expiration,
    )


class FakeGateway:
    """In-memory IdentityGateway that records every call."""

    def __init__(
        self,
        credentials: Optional[CredentialSet] = None,
        mfa_device: Optional[str] = None,
        error: Optional[RoleAssumptionError] = None,
    ):
        self.credentials = credentials or make_credentials()
        self.mfa_device = mfa_device
        self.error = error
        self.assume_calls: list[AssumeRoleParams] = []
        self.mfa_lookups = 0

    def find_mfa_device(self) -> Optional[str]:
        self.mfa_lookups += 1
        return self.mfa_device

    def assume_role(self, params: AssumeRoleParams) -> AssumeRoleResult:
        self.assume_calls.append(params)
        if self.error:
            raise self.error
        return AssumeRoleResult(
            credentials=self.credentials,
            assumed_role_user={
                "AssumedRoleId": "AROA123456789EXAMPLE:" + params.session_name,
                "Arn": f"arn:aws:sts::123456789012:assumed-role/Admin/{params.session_name}",
            },
        )


class RecordingCodeProvider:
    """CodeProvider returning a fixed code and recording which devices were challenged."""

    def __init__(self, code: str = "123456"):
        self.code = code
        self.requests: list[str] = []

    def get_code(self, mfa_serial: str) -> str:
        self.requests.append(mfa_serial)
        return self.code


@pytest.fixture
def fake_gateway():
    return FakeGateway()
