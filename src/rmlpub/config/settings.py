"""
Configuration management for the rmlpub pipeline.

Usage:
    from rmlpub.config.settings import Config
    config = Config()
    timeouts = config.http.timeouts()

Environment Variables:
    RMLPUB_BEARER_TOKEN: Bearer token sent to the storage endpoint and feed
    RMLPUB_CONNECT_TIMEOUT: Connect timeout in seconds for every HTTP call
    RMLPUB_REQUEST_TIMEOUT: Per-request timeout in seconds for every HTTP call
    RMLMAPPER_COMMAND: Command line that starts the conversion engine
    RMLMAPPER_TIMEOUT: Conversion timeout in seconds
    RMLPUB_URN_NAMESPACE: Namespace used in creation event and profile URNs
    RMLPUB_TEMP_DIR: Root directory for per-process temp files
    TEMP_RETENTION_HOURS: Age after which stale temp files are removed
"""

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from ..types import HttpTimeouts

logger = logging.getLogger(__name__)


@dataclass
class HttpConfig:
    """HTTP client configuration shared by the store and feed steps."""
    connect_timeout: float = 20.0
    request_timeout: float = 120.0
    bearer_token: Optional[str] = None

    def __post_init__(self):
        """Validate timeout budgets."""
        if self.connect_timeout <= 0:
            raise ValueError("Connect timeout must be positive")
        if self.request_timeout <= 0:
            raise ValueError("Request timeout must be positive")
        if self.bearer_token is not None and not self.bearer_token.strip():
            self.bearer_token = None

    def timeouts(self, connect: Optional[float] = None, request: Optional[float] = None) -> HttpTimeouts:
        """Timeout pair; explicit values take precedence over the configured ones."""
        return HttpTimeouts(connect=connect or self.connect_timeout, request=request or self.request_timeout)


@dataclass
class MapperConfig:
    """Conversion engine invocation."""
    command: str = "java -jar rmlmapper.jar"
    timeout_s: int = 600

    def __post_init__(self):
        """Validate mapper configuration."""
        if not self.command.strip():
            raise ValueError("Mapper command cannot be empty")
        if self.timeout_s < 1:
            raise ValueError("Mapper timeout must be at least 1 second")

    def argv(self) -> list[str]:
        return shlex.split(self.command)


@dataclass
class FeedConfig:
    """Identifiers minted into delta documents."""
    urn_namespace: str = "deployEMDS"

    def __post_init__(self):
        """Validate namespace format."""
        if not self.urn_namespace or ":" in self.urn_namespace or " " in self.urn_namespace:
            raise ValueError("URN namespace must be a non-empty token without ':' or spaces")


@dataclass
class TempConfig:
    """Temporary file management configuration."""
    retention_hours: int = 24
    temp_root: Optional[str] = None

    def __post_init__(self):
        """Validate temp management configuration."""
        if self.retention_hours < 0:
            raise ValueError("Retention hours must be non-negative")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


class Config:
    """
    Centralized configuration management for the rmlpub pipeline.

    Publication metadata (titles, keywords, endpoints) comes from the CLI or
    a YAML file; this class only covers runtime settings and credentials.

    Environment variables loaded (in order of preference):
    1. Explicit environment file passed to constructor
    2. .env.{ENVIRONMENT} (where ENVIRONMENT=development|production|staging)
    3. .env file in project root
    4. System environment variables

    Example:
        config = Config(environment="production")
        config = Config(env_file=Path("/secure/production.env"))
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 env_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            environment: Target environment (development|staging|production)
            env_file: Explicit path to environment file
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.project_root = self._find_project_root()

        self._load_environment_variables(env_file)

        self._load_http_config()
        self._load_mapper_config()
        self._load_feed_config()
        self._load_temp_config()

    def _find_project_root(self) -> Path:
        """Find project root directory containing pyproject.toml, .git or a .env file."""
        current = Path(__file__).resolve()

        for parent in current.parents:
            if any((parent / marker).exists() for marker in ['pyproject.toml', '.git']):
                return parent

        if (Path.cwd() / '.env').exists():
            return Path.cwd()

        return Path.cwd()

    def _load_environment_variables(self, env_file: Path | None) -> None:
        """Load environment variables from appropriate source."""
        loaded_files = []

        if env_file:
            if env_file.exists():
                load_dotenv(env_file)
                loaded_files.append(str(env_file))
                logger.info(f"Loaded configuration from {env_file}")
            else:
                raise ConfigurationError(f"Specified env file not found: {env_file}")

        else:
            env_specific_file = self.project_root / f".env.{self.environment}"
            if env_specific_file.exists():
                load_dotenv(env_specific_file)
                loaded_files.append(str(env_specific_file))
                logger.info(f"Loaded environment-specific config: {env_specific_file}")

            generic_env_file = self.project_root / ".env"
            if generic_env_file.exists():
                load_dotenv(generic_env_file)
                loaded_files.append(str(generic_env_file))
                logger.info(f"Loaded generic config: {generic_env_file}")

        if not loaded_files:
            logger.debug("No .env files found, using system environment variables only")

        self._loaded_env_files = loaded_files

        logger.debug(f"Project root: {self.project_root}")
        logger.debug(f"Environment: {self.environment}")

    def _load_http_config(self) -> None:
        """Load HTTP timeouts and credentials."""
        try:
            self.http = HttpConfig(
                connect_timeout=float(os.getenv("RMLPUB_CONNECT_TIMEOUT", "20")),
                request_timeout=float(os.getenv("RMLPUB_REQUEST_TIMEOUT", "120")),
                bearer_token=os.getenv("RMLPUB_BEARER_TOKEN")
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid HTTP configuration: {e}")

    def _load_mapper_config(self) -> None:
        """Load conversion engine configuration."""
        try:
            self.mapper = MapperConfig(
                command=os.getenv("RMLMAPPER_COMMAND", "java -jar rmlmapper.jar"),
                timeout_s=int(os.getenv("RMLMAPPER_TIMEOUT", "600"))
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid mapper configuration: {e}")

    def _load_feed_config(self) -> None:
        """Load delta document identifiers."""
        try:
            self.feed = FeedConfig(
                urn_namespace=os.getenv("RMLPUB_URN_NAMESPACE", "deployEMDS")
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid feed configuration: {e}")

    def _load_temp_config(self) -> None:
        """Load temporary file management configuration."""
        try:
            self.temp = TempConfig(
                retention_hours=int(os.getenv("TEMP_RETENTION_HOURS", "24")),
                temp_root=os.getenv("RMLPUB_TEMP_DIR") or None
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid temp management configuration: {e}")

    def get_security_summary(self) -> dict[str, Any]:
        """
        Get configuration summary for audit purposes.

        Returns:
            Dictionary with configuration info (no secrets)
        """
        return {
            'environment': self.environment,
            'loaded_env_files': self._loaded_env_files,
            'connect_timeout': self.http.connect_timeout,
            'request_timeout': self.http.request_timeout,
            'bearer_token_configured': self.http.bearer_token is not None,
            'mapper_command': self.mapper.command,
            'urn_namespace': self.feed.urn_namespace,
        }

    def __repr__(self) -> str:
        """Safe string representation without credentials."""
        return (
            f"Config(environment={self.environment}, "
            f"timeouts=({self.http.connect_timeout}, {self.http.request_timeout}), "
            f"urn_namespace={self.feed.urn_namespace})"
        )
