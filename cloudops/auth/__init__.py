"""AWS authentication and role management.

This module provides role assumption with MFA support and a local
credential cache for cross-account AWS access.
"""

from .cache import CredentialCache, cache_key
from .mfa import CodeProvider, StaticCodeProvider, TerminalCodeProvider
from .models import CredentialSet, RequestValidationError, RoleAssumptionRequest
from .role_manager import RoleManager
from .sts import Boto3IdentityGateway, RoleAssumptionError

__all__ = [
    "Boto3IdentityGateway",
    "CodeProvider",
    "CredentialCache",
    "CredentialSet",
    "RequestValidationError",
    "RoleAssumptionError",
    "RoleAssumptionRequest",
    "RoleManager",
    "StaticCodeProvider",
    "TerminalCodeProvider",
    "cache_key",
]
