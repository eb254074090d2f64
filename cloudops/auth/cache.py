"""File-based credential cache for assumed roles.

One JSON file per (role ARN, MFA serial, external ID) triple, stored next to
the AWS CLI's own cache. Reads fail open (any problem is a cache miss) and
writes never fail the caller.

Concurrent invocations are not serialized: two processes missing at the same
time both call STS and the last writer wins. A torn read parses as invalid
JSON and is treated as a miss.
"""

import hashlib
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog

from .models import EXPIRY_MARGIN_SECONDS, CredentialSet

logger = structlog.get_logger(__name__)

CACHE_FILE_PREFIX = "assume-role-"
DIR_MODE = 0o700
FILE_MODE = 0o600


def default_cache_dir() -> Path:
    """Returns ~/.aws/cli/cache"""
    return Path.home() / ".aws" / "cli" / "cache"


def cache_key(role_arn: str, mfa_serial: Optional[str] = None, external_id: Optional[str] = None) -> str:
    """Derive the cache key for a role/MFA/external-ID triple.

    Session name and duration are not part of the key. The trailing newline
    is part of the hashed material (``echo "$key" | sha256sum``); changing it
    orphans existing cache files.

    Returns:
        First 16 hex digits of the SHA-256 digest
    """
    material = f"{role_arn}:{mfa_serial or 'none'}:{external_id or 'none'}\n"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:16]


class CredentialCache:
    """Reads and writes cached credentials under a single directory."""

    def __init__(self, cache_dir: Optional[Path] = None):
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else default_cache_dir()

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{CACHE_FILE_PREFIX}{key}.json"

    def read(self, key: str) -> Optional[CredentialSet]:
        """Load the entry stored under ``key``.

        Returns:
            The cached CredentialSet, or None if the file is missing, unreadable,
            not JSON, or lacks any of the credential fields
        """
        path = self.path_for(key)
        if not path.is_file():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
            return CredentialSet.from_sts_credentials(document["Credentials"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("Ignoring unusable cache entry", path=str(path), error=str(e))
            return None

    def get_fresh(
        self, key: str, now: Optional[datetime] = None, margin_seconds: int = EXPIRY_MARGIN_SECONDS
    ) -> Optional[CredentialSet]:
        """Return the cached entry only if more than ``margin_seconds`` remain."""
        credentials = self.read(key)
        if credentials is None:
            return None

        if not credentials.is_fresh(now=now, margin_seconds=margin_seconds):
            logger.debug(
                "Cached credentials expire too soon",
                expires_at=credentials.expiration_iso(),
                margin_seconds=margin_seconds,
            )
            return None

        return credentials

    def write(self, key: str, credentials: CredentialSet, assumed_role_user: Optional[dict] = None) -> bool:
        """Persist credentials under ``key``, overwriting any previous entry.

        The directory is created with mode 0700 and the file with mode 0600.

        Returns:
            True if the entry was written, False if writing failed
        """
        path = self.path_for(key)
        document: dict = {"Credentials": credentials.to_sts_credentials()}
        if assumed_role_user:
            document["AssumedRoleUser"] = assumed_role_user

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            os.chmod(self.cache_dir, DIR_MODE)

            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.chmod(path, FILE_MODE)
        except OSError as e:
            logger.warning("Failed to cache credentials", path=str(path), error=str(e))
            return False

        logger.debug("Credentials cached", path=str(path))
        return True
