# src/siemship/core/config.py
"""
Configuration schema and loading for the siemship exporter.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ENDPOINT = "malachiteingestion-pa.googleapis.com"
DEFAULT_BATCH_LOG_COUNT_LIMIT = 1000
DEFAULT_BATCH_REQUEST_SIZE_LIMIT = 1048576

PROTOCOL_GRPC = "gRPC"
PROTOCOL_HTTPS = "https"

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


class RetrySettings(BaseModel):
    """Retry behavior configuration."""

    model_config = {"frozen": True}

    max_attempts: int = Field(default=3, gt=0, description="Maximum upload attempts per payload")
    initial_delay_seconds: float = Field(default=1.0, gt=0, description="Initial backoff delay")
    max_delay_seconds: float = Field(default=60.0, gt=0, description="Maximum backoff delay")
    exponential_base: float = Field(default=2.0, gt=1.0, description="Exponential backoff base")


class ExporterSettings(BaseModel):
    """Exporter configuration.

    Covers routing defaults (log type, namespace, labels), the raw-log field
    expression, transport selection and the per-protocol batch limits.
    Access tokens are not part of the settings file; the CLI takes them
    from the environment.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    protocol: Literal["gRPC", "https"] = Field(default=PROTOCOL_GRPC, description="Transport used to reach the ingestion API")
    endpoint: str = Field(default=DEFAULT_ENDPOINT, description="Ingestion API host, without scheme")
    customer_id: str = Field(default="", description="Customer UUID the logs are ingested for")
    log_type: str = Field(default="", description="Log type used when a record does not name one")
    override_log_type: bool = Field(default=True, description="Map known attributes['log_type'] values to log types")
    raw_log_field: str = Field(default="", description="Field path for the raw payload; empty ships the whole record")
    namespace: str = Field(default="", description="Namespace used when a record does not name one")
    compression: Literal["none", "gzip"] = Field(default="none", description="Request compression")
    ingestion_labels: dict[str, str] = Field(default_factory=dict, description="Labels used when a record carries none")
    collect_agent_metrics: bool = Field(default=True, description="Track sent entry and byte counters")

    # HTTPS only
    location: str = Field(default="", description="Region of the ingestion API (https)")
    project: str = Field(default="", description="Cloud project id (https)")
    forwarder: str = Field(default="", description="Forwarder id (https)")

    batch_log_count_limit_grpc: int = Field(default=DEFAULT_BATCH_LOG_COUNT_LIMIT, gt=0)
    batch_request_size_limit_grpc: int = Field(default=DEFAULT_BATCH_REQUEST_SIZE_LIMIT, gt=0)
    batch_log_count_limit_http: int = Field(default=DEFAULT_BATCH_LOG_COUNT_LIMIT, gt=0)
    batch_request_size_limit_http: int = Field(default=DEFAULT_BATCH_REQUEST_SIZE_LIMIT, gt=0)

    timeout_seconds: float = Field(default=5.0, gt=0, description="Per-request upload timeout")
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Endpoint is a bare host; the transport picks the scheme."""
        if v.startswith(("http://", "https://")):
            raise ValueError("endpoint should not contain a protocol")
        return v

    @field_validator("raw_log_field")
    @classmethod
    def validate_raw_log_field(cls, v: str) -> str:
        """Validate the raw-log field expression at config time."""
        if v == "":
            return v

        from siemship.exporter.field_path import FieldPathSyntaxError, parse_field_path

        try:
            parse_field_path(v)
        except FieldPathSyntaxError as e:
            raise ValueError(f"raw_log_field is invalid: {e}") from e
        return v

    @model_validator(mode="after")
    def validate_https_target(self) -> "ExporterSettings":
        """The HTTPS import endpoint is addressed by location, project and forwarder."""
        if self.protocol != PROTOCOL_HTTPS:
            return self
        missing = [name for name in ("location", "project", "forwarder") if not getattr(self, name)]
        if missing:
            raise ValueError(f"{', '.join(missing)} must be set when protocol is https")
        return self

    @property
    def batch_log_count_limit(self) -> int:
        """Entry-count limit for the selected protocol."""
        if self.protocol == PROTOCOL_HTTPS:
            return self.batch_log_count_limit_http
        return self.batch_log_count_limit_grpc

    @property
    def batch_request_size_limit(self) -> int:
        """Wire-size limit in bytes for the selected protocol."""
        if self.protocol == PROTOCOL_HTTPS:
            return self.batch_request_size_limit_http
        return self.batch_request_size_limit_grpc


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """
    import os

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default: keep the reference so validation can flag it
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> ExporterSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (SIEMSHIP_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: SIEMSHIP_RETRY__MAX_ATTEMPTS for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ExporterSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="SIEMSHIP",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    if "retry" in raw_config and isinstance(raw_config["retry"], dict):
        raw_config["retry"] = {k.lower(): v for k, v in raw_config["retry"].items()}

    raw_config = _expand_env_vars(raw_config)

    return ExporterSettings(**raw_config)
