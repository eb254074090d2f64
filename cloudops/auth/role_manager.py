"""AWS IAM role assumption with MFA support and local credential caching.

RoleManager.resolve() runs a strictly linear pipeline:

    cache key -> cache lookup (hit: return) -> MFA device detection
    -> MFA code prompt -> STS AssumeRole -> cache write -> return

Nothing is retried. A rejected AssumeRole call aborts the flow so that a
wrong MFA code or trust policy always requires a fresh, explicit invocation.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from .cache import CredentialCache, cache_key
from .mfa import CodeProvider, TerminalCodeProvider
from .models import CredentialSet, RoleAssumptionRequest
from .sts import AssumeRoleParams, Boto3IdentityGateway, IdentityGateway, RoleAssumptionError

logger = structlog.get_logger(__name__)

GatewayFactory = Callable[[RoleAssumptionRequest], IdentityGateway]


def default_gateway_factory(request: RoleAssumptionRequest) -> IdentityGateway:
    return Boto3IdentityGateway(profile=request.source_profile, region=request.region)


class RoleManager:
    """Produces temporary credentials for a role, reusing cached ones while valid.

    Usage:
        manager = RoleManager()
        request = RoleAssumptionRequest.build(role_arn="arn:aws:iam::123456789012:role/Admin")
        credentials = manager.resolve(request)

    Args:
        cache: Credential cache (defaults to ~/.aws/cli/cache)
        code_provider: Source of MFA codes (defaults to a terminal prompt)
        gateway_factory: Builds the identity gateway for a request; the default
            uses boto3 with the request's source profile and region
        clock: Returns the current time; injectable for tests
    """

    def __init__(
        self,
        cache: Optional[CredentialCache] = None,
        code_provider: Optional[CodeProvider] = None,
        gateway_factory: Optional[GatewayFactory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cache = cache or CredentialCache()
        self.code_provider = code_provider or TerminalCodeProvider()
        self.gateway_factory = gateway_factory or default_gateway_factory
        self.clock = clock

    def _now(self) -> Optional[datetime]:
        return self.clock() if self.clock else None

    def resolve(self, request: RoleAssumptionRequest) -> CredentialSet:
        """Return credentials for ``request``.

        Raises:
            RoleAssumptionError: If STS rejects the AssumeRole call
        """
        key = cache_key(request.role_arn, request.mfa_serial, request.external_id)

        if request.use_cache:
            cached = self.cache.get_fresh(key, now=self._now())
            if cached is not None:
                logger.debug("Using cached credentials", expires_at=cached.expiration_iso())
                logger.info("Role assumed", role_arn=request.role_arn, cached=True)
                return cached

        gateway = self.gateway_factory(request)

        mfa_serial = request.mfa_serial or self._detect_mfa_device(gateway)
        token_code = self.code_provider.get_code(mfa_serial) if mfa_serial else None

        params = AssumeRoleParams(
            role_arn=request.role_arn,
            session_name=request.session_name,
            duration_seconds=request.duration_seconds,
            external_id=request.external_id,
            mfa_serial=mfa_serial,
            token_code=token_code,
        )

        logger.debug(
            "Assuming role",
            role_arn=request.role_arn,
            session_name=request.session_name,
            duration_seconds=request.duration_seconds,
            has_external_id=bool(request.external_id),
            has_mfa=bool(mfa_serial),
        )

        try:
            result = gateway.assume_role(params)
        except RoleAssumptionError as e:
            logger.error("Failed to assume role", role_arn=request.role_arn, error=str(e))
            raise

        if request.use_cache:
            self.cache.write(key, result.credentials, result.assumed_role_user)

        logger.info("Role assumed", role_arn=request.role_arn)
        logger.debug("Session expires", expires_at=result.credentials.expiration_iso())
        return result.credentials

    def _detect_mfa_device(self, gateway: IdentityGateway) -> Optional[str]:
        logger.debug("Detecting MFA device")
        mfa_serial = gateway.find_mfa_device()
        if mfa_serial:
            logger.debug("Detected MFA device", mfa_serial=mfa_serial)
        return mfa_serial
