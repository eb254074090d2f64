"""
Pydantic Configuration Schema Models

Defines the data models for the cloudops settings file with:
- Type safety and validation
- Field name aliasing (camelCase <-> snake_case)
- Defaults matching the command-line tools

Module: config_schema
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .auth.models import DEFAULT_DURATION_SECONDS, MAX_DURATION_SECONDS, MIN_DURATION_SECONDS

OutputFormat = Literal["shell", "fish", "json"]

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class AssumeRoleSettings(BaseModel):
    """Defaults for the assume-role command"""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    cache_dir: Optional[str] = Field(
        None, alias="cacheDir", description="Credential cache directory (default: ~/.aws/cli/cache)"
    )
    duration: int = Field(
        DEFAULT_DURATION_SECONDS,
        ge=MIN_DURATION_SECONDS,
        le=MAX_DURATION_SECONDS,
        description="Session duration in seconds",
    )
    source_profile: Optional[str] = Field(
        None, alias="sourceProfile", description="AWS CLI profile for source credentials"
    )
    region: Optional[str] = Field(None, description="AWS region for STS and IAM calls")
    use_cache: bool = Field(True, alias="useCache", description="Reuse cached credentials while valid")
    output_format: OutputFormat = Field("shell", alias="outputFormat", description="Credential output format")


class CleanupSettings(BaseModel):
    """Defaults for the cluster cleanup command"""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    kubeconfig: Optional[str] = Field(None, description="Path to kubeconfig file")
    context: Optional[str] = Field(None, description="Kubeconfig context to use")
    namespace: Optional[str] = Field(None, description="Namespace to clean (default: all namespaces)")


class Settings(BaseModel):
    """
    cloudops Settings

    Root of the settings file. Every section is optional; missing values
    fall back to the command-line defaults.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    log_level: str = Field("INFO", alias="logLevel", description="Logging level")
    log_format: Literal["console", "json"] = Field("console", alias="logFormat", description="Log renderer")
    assume_role: AssumeRoleSettings = Field(default_factory=AssumeRoleSettings, alias="assumeRole")
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v.upper()
