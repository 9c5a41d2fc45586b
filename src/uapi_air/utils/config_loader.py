# uapi_air/utils/config_loader.py
"""
uAPI configuration.

config.yaml has four sections, each validated by its own Pydantic model:

    uapi:     endpoint, credentials, target branch, provider, schema version
    client:   HTTP timeouts and certificate verification
    parsing:  defaults for the ParseOptions handed to normalizers
    logging:  console level and an optional log file

load_config() validates the whole file up front, so a bad endpoint or a
malformed schema version fails before the first request is rendered. The
password is a SecretStr and never shows up in reprs or logs.

The file is looked up at the explicit path given to load_config(), then at
the path named by the UAPI_AIR_CONFIG environment variable, then next to the
package (uapi_air/config/config.yaml).
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal, cast

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

logger: logging.Logger = logging.getLogger(__name__)

CONFIG_PATH_ENV: str = 'UAPI_AIR_CONFIG'

# Level names accepted by the logging module
LogLevelName = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
STANDARD_LEVELS: frozenset[int] = frozenset({10, 20, 30, 40, 50})

# uAPI schema versions look like 'v52_0'
VERSION_PATTERN: re.Pattern[str] = re.compile(r'^v\d+_\d+$')


def _level_to_int(level: LogLevelName | int) -> int:
    if isinstance(level, int):
        return level
    return cast(int, getattr(logging, level))


# =============================================================================
# Sections
# =============================================================================


class UapiSection(BaseModel):
    """
    Schema for the 'uapi' section of config.yaml.

    Validates the service endpoint, credentials and the branch/provider/schema
    version every request is sent with.
    """

    model_config = ConfigDict(extra='forbid')
    endpoint_url: HttpUrl = Field(
        ...,
        description='Base URL of the uAPI endpoint, e.g. '
        'https://emea.universal-api.travelport.com/B2BGateway/connect/uAPI. '
        'The service path (AirService, UniversalRecordService) is appended per call.',
    )

    username: str = Field(
        ...,
        min_length=1,
        description='uAPI user name (Universal API/uAPI...).',
    )

    password: SecretStr = Field(
        ...,
        description='uAPI password. Stored as SecretStr to prevent accidental exposure.',
    )

    target_branch: str = Field(
        ...,
        min_length=1,
        description='Target branch code sent as TargetBranch on every request.',
    )

    provider: str = Field(
        default='1G',
        min_length=2,
        max_length=2,
        description='GDS provider code. 1G (Galileo) unless configured otherwise.',
    )

    version: str = Field(
        default='v52_0',
        description='Schema version used for request namespaces and response keys.',
    )

    @field_validator('password')
    @classmethod
    def password_not_empty(cls, v: SecretStr) -> SecretStr:
        """Ensure the password is not an empty string."""
        if not v.get_secret_value():
            raise ValueError('Password cannot be empty')
        return v

    @field_validator('version')
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not VERSION_PATTERN.match(v):
            raise ValueError(f'version must look like "v52_0", got "{v}"')
        return v


class ClientSection(BaseModel):
    """Schema for the 'client' section: how requests reach the endpoint."""

    model_config = ConfigDict(extra='forbid')
    request_timeout: tuple[float, float] = Field(
        default=(10.0, 60.0),
        description='(connect, read) timeouts in seconds. Low fare searches can '
        'take a long time to answer, so the read timeout is generous by default.',
    )

    verify_ssl: bool = Field(
        default=True,
        description='Verify the endpoint certificate. Only pre-production '
        'gateways with self-signed certificates need False.',
    )

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout_values(cls, v: tuple[float, float]) -> tuple[float, float]:
        """Both timeouts must be positive; connecting may not take longer than reading."""
        connect_timeout, read_timeout = v
        for name, value in (('connect', connect_timeout), ('read', read_timeout)):
            if value <= 0:
                raise ValueError(f'{name} timeout must be positive, got {value}')
        if connect_timeout > read_timeout:
            raise ValueError(
                f'connect timeout {connect_timeout}s should not exceed read timeout {read_timeout}s'
            )
        return v


class ParsingSection(BaseModel):
    """
    Schema for the 'parsing' section of config.yaml.

    Defaults for the ParseOptions handed to response normalizers.
    """

    model_config = ConfigDict(extra='forbid')
    allow_no_provider_locator_code_retrieval: bool = Field(
        default=False,
        description='Accept tickets whose record has no provider locator '
        '(legacy or not imported records) instead of failing.',
    )

    stopover_threshold_hours: float = Field(
        default=24.0,
        gt=0.0,
        description='A connection longer than this many hours is a stopover.',
    )


class LoggingSection(BaseModel):
    """
    Schema for the 'logging' section of config.yaml.

    The console handler is always installed. A file handler is added when
    ``file_path`` is set; its level defaults to DEBUG so the file keeps the
    request and response bodies the transport logs on errors.
    """

    model_config = ConfigDict(extra='forbid')
    console_level: LogLevelName | int = Field(
        default='INFO',
        description='Console level, as a name (INFO) or a number (20).',
    )

    file_path: Path | None = Field(
        default=None,
        description='Log file. File logging is off when unset.',
    )

    file_level: LogLevelName | int | None = Field(
        default=None,
        description='File level, as a name or a number. Requires file_path.',
    )

    @field_validator('console_level', 'file_level')
    @classmethod
    def validate_log_level(
        cls, v: LogLevelName | int | None
    ) -> LogLevelName | int | None:
        """Numeric levels must be one of the standard logging levels."""
        if isinstance(v, int) and v not in STANDARD_LEVELS:
            raise ValueError(f'numeric log level must be one of {sorted(STANDARD_LEVELS)}, got {v}')
        return v

    @model_validator(mode='after')
    def validate_file_logging_consistency(self) -> 'LoggingSection':
        """A file level needs a file; a file without a level logs at DEBUG."""
        if self.file_path is None:
            if self.file_level is not None:
                raise ValueError('file_level is set but file_path is missing')
            return self

        if self.file_level is None:
            logger.warning(f'No file_level for {self.file_path}, logging DEBUG to it')
            self.file_level = 'DEBUG'
        return self

    def get_console_level_int(self) -> int:
        return _level_to_int(self.console_level)

    def get_file_level_int(self) -> int | None:
        """File level as a logging constant, or None when file logging is off."""
        return None if self.file_level is None else _level_to_int(self.file_level)


class UapiAirConfig(BaseModel):
    """
    Root configuration model.

    Only the 'uapi' section is mandatory.

    Usage:
        config = load_config()
        endpoint = config.uapi.endpoint_url
        options = ParseOptions.from_config(config.parsing)
    """

    model_config = ConfigDict(extra='forbid')
    uapi: UapiSection
    client: ClientSection = Field(default_factory=ClientSection)
    parsing: ParsingSection = Field(default_factory=ParsingSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)


# =============================================================================
# Loading
# =============================================================================


def _get_default_config_path() -> Path:
    """
    Resolve the config file used when load_config() gets no path.

    UAPI_AIR_CONFIG wins when set; otherwise the file shipped with the package:

        uapi_air/
        ├── config/config.yaml      <-- default
        └── utils/config_loader.py  <-- this file
    """
    from_env: str | None = os.environ.get(CONFIG_PATH_ENV)
    if from_env:
        return Path(from_env)
    return Path(__file__).resolve().parent.parent / 'config' / 'config.yaml'


def load_config(config_path: Path | str | None = None) -> UapiAirConfig:
    """
    Read config.yaml and validate it.

    Args:
        config_path: Explicit config file. When None, the UAPI_AIR_CONFIG
                     environment variable or the packaged default is used.

    Returns:
        The validated UapiAirConfig.

    Raises:
        FileNotFoundError: The config file does not exist.
        yaml.YAMLError: The file is not valid YAML.
        ValidationError: The YAML does not describe a valid configuration.

    Example:
        config = load_config()
        sandbox = load_config('config/sandbox.yaml')
    """
    path: Path = Path(config_path) if config_path else _get_default_config_path()
    logger.debug(f'Loading uAPI configuration from {path}')

    if not path.is_file():
        message: str = f'Configuration file not found at: {path}'
        logger.error(message)
        raise FileNotFoundError(message)

    try:
        raw: dict[str, Any] | None = yaml.safe_load(path.read_text(encoding='utf-8'))
    except yaml.YAMLError as e:
        logger.error(f'{path} is not valid YAML: {e}')
        raise

    try:
        config: UapiAirConfig = UapiAirConfig.model_validate(raw or {})
    except ValidationError as e:
        logger.error(f'Invalid configuration in {path}: {e}')
        raise

    logger.debug(
        f'Configuration loaded: branch {config.uapi.target_branch}, '
        f'provider {config.uapi.provider}, schema {config.uapi.version}'
    )
    return config
