"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses, one per concern:

    ServerConfig    how the HTTP listener behaves (address, timeouts, logs)
    RemoteConfig    how to reach the remote users table (key, project ref)

=============================================================================
WHERE VALUES COME FROM
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. Process environment        API_KEY=... PROJECT_REF=...         │
    │   2. .env file (python-dotenv)  never overrides variables that are  │
    │                                 already set                          │
    │   3. Dataclass defaults                                             │
    └─────────────────────────────────────────────────────────────────────┘

The listening address is fixed at localhost:8080. It is a field on
ServerConfig only so tests can bind to a throwaway port; neither the
environment nor the CLI can change it.

=============================================================================
FAIL FAST
=============================================================================

Both classes validate eagerly. A missing API_KEY or PROJECT_REF raises
ConfigurationError before a single socket is opened, and the CLI turns
that into exit status 1.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


logger = logging.getLogger(__name__)


TRUTHY = {"1", "true", "yes"}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(ValueError):
    """A required setting is missing or invalid."""


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable (``true``/``1``/``yes``/``on``)."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUTHY


def load_env_file(path: Optional[str] = None) -> bool:
    """
    Load a ``.env`` file into ``os.environ``.

    Variables already present in the environment win over the file.

    Args:
        path: Explicit file to load. When omitted, ``.env`` is searched for
              starting from the current working directory.

    Returns:
        True if a file was found and loaded.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path or not os.path.isfile(env_path):
        logger.debug("No .env file found")
        return False

    load_dotenv(env_path, override=False)
    logger.debug(f"Loaded environment from {env_path}")
    return True


@dataclass
class ServerConfig:
    """
    Settings for the HTTP listener.

    NETWORK   host, port, backlog, buffer_size, timeout
    HTTP      keep_alive, keep_alive_timeout, max_request_size
    LOGGING   log_level, log_format
    """

    host: str = "localhost"
    port: int = 8080

    backlog: int = 128
    """Connections the kernel may queue before refusing new ones."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    timeout: Optional[float] = 30.0
    """Seconds to wait for the first request on a new connection."""

    keep_alive: bool = True

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024

    log_level: str = "INFO"

    log_format: str = "text"
    """Access log format: ``text`` (Apache style) or ``json``."""

    server_name: str = "userserver/1.0"

    def validate(self) -> None:
        # port 0 lets the OS pick one (tests)
        if not 0 <= self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 1024:
            raise ConfigurationError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log_level: {self.log_level!r}")

        if self.log_format not in ("text", "json"):
            raise ConfigurationError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def setup_logging(self) -> None:
        """
        Configure the root logger once, then set the package level.

        Safe to call repeatedly; basicConfig is a no-op once the root
        logger has handlers.
        """
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("userserver").setLevel(level)


@dataclass
class RemoteConfig:
    """
    Credentials and endpoint for the remote users table.

    ``base_url`` defaults to the hosted project URL derived from
    ``project_ref``; tests point it at a fake.
    """

    api_key: str = ""
    project_ref: str = ""
    debug: bool = False
    timeout: Optional[float] = 30.0
    table: str = "users"
    base_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RemoteConfig":
        """
        Build from the environment.

            API_KEY       service key for the project        (required)
            PROJECT_REF   project reference, e.g. abcdefgh   (required)
            DEBUG         log every remote request           (optional)

        Raises:
            ConfigurationError: If API_KEY or PROJECT_REF is empty.
        """
        config = cls(
            api_key=os.getenv("API_KEY", ""),
            project_ref=os.getenv("PROJECT_REF", ""),
            debug=env_flag("DEBUG"),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if not self.api_key or not self.project_ref:
            raise ConfigurationError("API_KEY or PROJECT_REF is not set")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be > 0")

    @property
    def rest_url(self) -> str:
        """Root of the PostgREST API, without a trailing slash."""
        base = self.base_url or f"https://{self.project_ref}.supabase.co"
        return base.rstrip("/") + "/rest/v1"
