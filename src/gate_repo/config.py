"""
Server configuration management.

This module handles loading and accessing server configuration from multiple sources
with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/server.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The ServerConfig
dataclass provides typed access to all settings.

Usage:
    from gate_repo.config import config

    print(config.server.port)
    print(config.ethereum.rpc_url)
    print(config.is_production)

Environment Variable Mapping:
    GATE_HOST                    -> server.host
    GATE_PORT                    -> server.port
    GATE_PRODUCTION              -> security.production
    GATE_CORS_ORIGINS            -> security.cors_origins
    GATE_SESSION_TTL_MINUTES     -> session.ttl_minutes
    GATE_DB_PATH                 -> database.path
    GATE_LOG_LEVEL               -> logging.level
    GATE_LOG_FORMAT              -> logging.format
    GATE_RPC_URL                 -> ethereum.rpc_url
    GATE_RPC_TIMEOUT_SECONDS     -> ethereum.timeout_seconds
    GATE_SNAPSHOT_SOURCE         -> ethereum.snapshot_source
    GATE_SCORE_API_URL           -> ethereum.score_api_url
    GATE_GITHUB_API_URL          -> github.api_url
    GATE_GITHUB_TIMEOUT_SECONDS  -> github.timeout_seconds
    GATE_AUDIT_ROOT              -> audit.root
    GATE_VERBOSE_ERRORS          -> features.verbose_errors
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "server.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "server.example.ini"


def _resolve_path(value: str) -> Path:
    p = Path(value)
    if p.is_absolute():
        return p
    return PROJECT_ROOT / p


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class ServerSettings:
    """Network server configuration."""

    host: str = "0.0.0.0"  # nosec B104 - intentional for server binding
    port: int = 8000


@dataclass
class SecuritySettings:
    """Security-related configuration."""

    production: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    cors_allow_credentials: bool = True
    docs_enabled: Literal["auto", "enabled", "disabled"] = "auto"


@dataclass
class SessionSettings:
    """Session management configuration."""

    ttl_minutes: int = 0  # 0 = sessions never expire


@dataclass
class DatabaseSettings:
    """Database configuration."""

    path: str = "data/gate_repo.db"

    @property
    def absolute_path(self) -> Path:
        """Get absolute path to database file."""
        return _resolve_path(self.path)


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class EthereumSettings:
    """
    Ethereum JSON-RPC and historical-balance configuration.

    ``snapshot_source`` selects how pinned-block balances are measured:
    ``score_api`` asks a Snapshot score service for the ``erc20-balance-of``
    voting power at the gate's block; ``archive_rpc`` issues ``eth_call``
    against the pinned block on an archive node. The score service computes
    in double precision and cannot resolve the last base unit of an 18-decimal
    token, so ``archive_rpc`` is the default.
    """

    rpc_url: str = "http://localhost:8545"
    timeout_seconds: float = 10.0
    snapshot_source: Literal["score_api", "archive_rpc"] = "archive_rpc"
    score_api_url: str = "https://score.snapshot.org/api/scores"


@dataclass
class GitHubSettings:
    """GitHub REST API configuration."""

    api_url: str = "https://api.github.com"
    timeout_seconds: float = 10.0


@dataclass
class AuditSettings:
    """Audit ledger configuration."""

    root: str = "data/audit"

    @property
    def absolute_root(self) -> Path:
        """Get absolute path to the audit ledger directory."""
        return _resolve_path(self.root)


@dataclass
class FeatureSettings:
    """Feature flags."""

    verbose_errors: bool = False


@dataclass
class ServerConfig:
    """
    Complete server configuration.

    This is the main configuration object that aggregates all settings sections.
    Access via the module-level `config` singleton.
    """

    server: ServerSettings = field(default_factory=ServerSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    session: SessionSettings = field(default_factory=SessionSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    ethereum: EthereumSettings = field(default_factory=EthereumSettings)
    github: GitHubSettings = field(default_factory=GitHubSettings)
    audit: AuditSettings = field(default_factory=AuditSettings)
    features: FeatureSettings = field(default_factory=FeatureSettings)

    @property
    def is_production(self) -> bool:
        """Convenience property for production mode check."""
        return self.security.production

    @property
    def docs_should_be_enabled(self) -> bool:
        """Determine if API docs should be enabled based on settings."""
        if self.security.docs_enabled == "enabled":
            return True
        if self.security.docs_enabled == "disabled":
            return False
        return not self.is_production


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string to list, stripping whitespace."""
    if not value or value.strip() == "":
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_from_ini(parser: configparser.ConfigParser, cfg: ServerConfig) -> None:
    """Load configuration from parsed INI file into ServerConfig."""
    if parser.has_section("server"):
        if parser.has_option("server", "host"):
            cfg.server.host = parser.get("server", "host")
        if parser.has_option("server", "port"):
            cfg.server.port = parser.getint("server", "port")

    if parser.has_section("security"):
        if parser.has_option("security", "production"):
            cfg.security.production = _parse_bool(parser.get("security", "production"))
        if parser.has_option("security", "cors_origins"):
            cfg.security.cors_origins = _parse_list(parser.get("security", "cors_origins"))
        if parser.has_option("security", "cors_allow_credentials"):
            cfg.security.cors_allow_credentials = _parse_bool(
                parser.get("security", "cors_allow_credentials")
            )
        if parser.has_option("security", "docs_enabled"):
            val = parser.get("security", "docs_enabled").lower()
            if val in ("auto", "enabled", "disabled"):
                cfg.security.docs_enabled = val  # type: ignore[assignment]

    if parser.has_section("session"):
        if parser.has_option("session", "ttl_minutes"):
            cfg.session.ttl_minutes = parser.getint("session", "ttl_minutes")

    if parser.has_section("database"):
        if parser.has_option("database", "path"):
            cfg.database.path = parser.get("database", "path")

    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed", "json"):
                cfg.logging.format = val  # type: ignore[assignment]

    if parser.has_section("ethereum"):
        if parser.has_option("ethereum", "rpc_url"):
            cfg.ethereum.rpc_url = parser.get("ethereum", "rpc_url")
        if parser.has_option("ethereum", "timeout_seconds"):
            cfg.ethereum.timeout_seconds = parser.getfloat("ethereum", "timeout_seconds")
        if parser.has_option("ethereum", "snapshot_source"):
            val = parser.get("ethereum", "snapshot_source").lower()
            if val in ("score_api", "archive_rpc"):
                cfg.ethereum.snapshot_source = val  # type: ignore[assignment]
        if parser.has_option("ethereum", "score_api_url"):
            cfg.ethereum.score_api_url = parser.get("ethereum", "score_api_url")

    if parser.has_section("github"):
        if parser.has_option("github", "api_url"):
            cfg.github.api_url = parser.get("github", "api_url")
        if parser.has_option("github", "timeout_seconds"):
            cfg.github.timeout_seconds = parser.getfloat("github", "timeout_seconds")

    if parser.has_section("audit"):
        if parser.has_option("audit", "root"):
            cfg.audit.root = parser.get("audit", "root")

    if parser.has_section("features"):
        if parser.has_option("features", "verbose_errors"):
            cfg.features.verbose_errors = _parse_bool(parser.get("features", "verbose_errors"))


def _apply_env_overrides(cfg: ServerConfig) -> None:
    """Apply environment variable overrides to configuration."""
    if env_host := os.getenv("GATE_HOST"):
        cfg.server.host = env_host
    if env_port := os.getenv("GATE_PORT"):
        cfg.server.port = int(env_port)

    if env_production := os.getenv("GATE_PRODUCTION"):
        cfg.security.production = _parse_bool(env_production)
    if env_cors := os.getenv("GATE_CORS_ORIGINS"):
        cfg.security.cors_origins = _parse_list(env_cors)

    if env_ttl := os.getenv("GATE_SESSION_TTL_MINUTES"):
        cfg.session.ttl_minutes = int(env_ttl)

    if env_db := os.getenv("GATE_DB_PATH"):
        cfg.database.path = env_db

    if env_log := os.getenv("GATE_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()
    if env_log_format := os.getenv("GATE_LOG_FORMAT"):
        if env_log_format.lower() in ("simple", "detailed", "json"):
            cfg.logging.format = env_log_format.lower()  # type: ignore[assignment]

    if env_rpc := os.getenv("GATE_RPC_URL"):
        cfg.ethereum.rpc_url = env_rpc
    if env_rpc_timeout := os.getenv("GATE_RPC_TIMEOUT_SECONDS"):
        cfg.ethereum.timeout_seconds = float(env_rpc_timeout)
    if env_source := os.getenv("GATE_SNAPSHOT_SOURCE"):
        if env_source.lower() in ("score_api", "archive_rpc"):
            cfg.ethereum.snapshot_source = env_source.lower()  # type: ignore[assignment]
    if env_score := os.getenv("GATE_SCORE_API_URL"):
        cfg.ethereum.score_api_url = env_score

    if env_gh := os.getenv("GATE_GITHUB_API_URL"):
        cfg.github.api_url = env_gh
    if env_gh_timeout := os.getenv("GATE_GITHUB_TIMEOUT_SECONDS"):
        cfg.github.timeout_seconds = float(env_gh_timeout)

    if env_audit := os.getenv("GATE_AUDIT_ROOT"):
        cfg.audit.root = env_audit

    if env_verbose := os.getenv("GATE_VERBOSE_ERRORS"):
        cfg.features.verbose_errors = _parse_bool(env_verbose)


def load_config() -> ServerConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/server.ini
        3. config/server.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        ServerConfig: Fully populated configuration object.
    """
    cfg = ServerConfig()

    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "ServerConfig":
    """
    Reload configuration from disk and environment.

    This updates the module-level `config` singleton. Use sparingly as it
    doesn't update already-running server middleware.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status() -> dict:
    """
    Get configuration status for diagnostics.

    Returns a dictionary with configuration source information,
    useful for debugging and the health endpoint.
    """
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "production_mode": config.is_production,
        "docs_enabled": config.docs_should_be_enabled,
        "snapshot_source": config.ethereum.snapshot_source,
    }


def print_config_summary() -> None:
    """Print a summary of current configuration to stdout."""
    status = get_config_status()
    print("\n" + "=" * 60)
    print("SERVER CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {status['config_file_path']}")
    print(f"File exists: {status['config_file_exists']}")
    if status["using_example"]:
        print("WARNING: Using example config (copy to server.ini for production)")
    print("-" * 60)
    print(f"Server:      {config.server.host}:{config.server.port}")
    print(f"Production:  {config.is_production}")
    print(f"Database:    {config.database.absolute_path}")
    print(f"RPC:         {config.ethereum.rpc_url}")
    print(f"Snapshots:   {config.ethereum.snapshot_source}")
    print(f"GitHub API:  {config.github.api_url}")
    print(f"Audit root:  {config.audit.absolute_root}")
    print(f"Log level:   {config.logging.level}")
    print("=" * 60 + "\n")


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_database:
    """
    Context manager for using a temporary test database.

    Usage:
        from gate_repo.config import use_test_database

        def test_something(tmp_path):
            with use_test_database(tmp_path / "test.db"):
                schema.init_database()

    Args:
        db_path: Path to the test database file
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.original_path: str | None = None

    def __enter__(self) -> Path:
        self.original_path = config.database.path
        config.database.path = str(self.db_path)
        return self.db_path

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_path is not None:
            config.database.path = self.original_path
        return None


class use_test_audit_root:
    """Context manager redirecting audit ledger writes to a temporary directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.original_root: str | None = None

    def __enter__(self) -> Path:
        self.original_root = config.audit.root
        config.audit.root = str(self.root)
        return self.root

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_root is not None:
            config.audit.root = self.original_root
        return None
