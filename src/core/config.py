#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional
from pathlib import Path

from core.env_loader import load_env_file
from core.models.entry import RunContext

logger = logging.getLogger(__name__)


@dataclass
class PathsConfig:
    """Filesystem locations used by the pipeline."""
    root_dir: Path
    reports_dir: Path
    history_path: Path
    site_dir: Path
    existing_site_dir: Optional[Path] = None
    report_url_prefix: str = "lighthouse-reports"


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    # Dashboard settings (0-100 scale, shared by every metric)
    dashboard_threshold: float = 90.0

    # Collection settings
    collect_workers: int = 4

    # Logging
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    paths: PathsConfig
    run: RunContext
    app: ApplicationConfig

    def has_existing_site(self) -> bool:
        """Check if a previously published site should be merged in."""
        return self.paths.existing_site_dir is not None


def parse_run_number(raw: Optional[str]) -> Optional[int]:
    """Parse an opaque run sequence; anything non-numeric degrades to None."""
    if raw is None or not str(raw).strip():
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.warning(f"Ignoring non-numeric run number: {raw!r}")
        return None


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        self._env_file_path = env_file_path
        load_env_file(env_file_path)

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""
        root_dir = Path(os.getenv('LIGHTHOUSE_ROOT_DIR') or os.getcwd()).resolve()

        existing_site = os.getenv('EXISTING_SITE_DIR')
        paths_config = PathsConfig(
            root_dir=root_dir,
            reports_dir=root_dir / os.getenv('LIGHTHOUSE_REPORTS_DIR', 'lighthouse-reports'),
            history_path=root_dir / os.getenv('LIGHTHOUSE_HISTORY_PATH', 'history/lighthouse-history.json'),
            site_dir=root_dir / os.getenv('LIGHTHOUSE_SITE_DIR', 'site'),
            existing_site_dir=root_dir / existing_site if existing_site else None,
            report_url_prefix=os.getenv('REPORT_URL_PREFIX', 'lighthouse-reports').strip('/')
        )

        # Run context is opaque; absence degrades to None
        run_context = RunContext(
            run_id=os.getenv('GITHUB_RUN_ID') or None,
            run_number=parse_run_number(os.getenv('GITHUB_RUN_NUMBER')),
            run_url=os.getenv('GITHUB_RUN_URL') or None
        )

        app_config = ApplicationConfig(
            dashboard_threshold=float(os.getenv('DASHBOARD_THRESHOLD', '90')),
            collect_workers=int(os.getenv('COLLECT_WORKERS', '4')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=os.getenv('VERBOSE_LOGGING', 'false').lower() == 'true'
        )

        config = Config(
            paths=paths_config,
            run=run_context,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []

        if config.app.dashboard_threshold < 0 or config.app.dashboard_threshold > 100:
            errors.append("DASHBOARD_THRESHOLD must be between 0 and 100")

        if config.app.collect_workers < 1 or config.app.collect_workers > 32:
            errors.append("COLLECT_WORKERS must be between 1 and 32")

        if not config.paths.report_url_prefix:
            errors.append("REPORT_URL_PREFIX must not be empty")

        # Validate log level
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.debug("Configuration validation passed")

    def update_logging(self, verbose: bool = False) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = logging.DEBUG if verbose else getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        # Configure format
        if config.app.verbose_logging or verbose:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        # Update existing handlers
        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
