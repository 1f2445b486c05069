"""
Configuration Management Module
Handles loading and validation of environment variables and settings
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_IMAP_PORT = 993
DEFAULT_MAX_BODY_PREVIEW = 200


class ConfigurationError(ValueError):
    """Raised when the configuration is missing or inconsistent"""


@dataclass
class ImapAccountConfig:
    """Configuration for the IMAP account to read from"""
    host: str
    port: int
    user: str
    password: str
    use_ssl: bool = True
    verify_ssl: bool = True
    mailbox: str = "INBOX"
    timeout: int = 30


@dataclass
class SystemConfig:
    """Configuration for system settings"""
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    log_format: str = "text"
    tasks_folder: str = "./tasks"
    max_body_preview: int = DEFAULT_MAX_BODY_PREVIEW


class Config:
    """Main configuration class"""

    def __init__(self, env_file: str = ".env"):
        """
        Initialize configuration from environment file

        Variables already set in the environment take precedence over the
        file.

        Args:
            env_file: Path to environment file (default: .env)
        """
        load_dotenv(env_file)

        self.account = self._load_account_config()
        self.system = self._load_system_config()

    def _load_account_config(self) -> ImapAccountConfig:
        """Load IMAP account configuration"""
        return ImapAccountConfig(
            host=os.getenv("IMAP_HOST", ""),
            port=self._get_int("IMAP_PORT", DEFAULT_IMAP_PORT),
            user=os.getenv("IMAP_USER", ""),
            password=os.getenv("IMAP_PASSWORD", ""),
            use_ssl=self._get_bool("IMAP_USE_SSL", True),
            verify_ssl=self._get_bool("IMAP_VERIFY_SSL", True),
            mailbox=os.getenv("IMAP_MAILBOX", "INBOX") or "INBOX",
            timeout=self._get_int("IMAP_TIMEOUT", 30),
        )

    def _load_system_config(self) -> SystemConfig:
        """Load system configuration"""
        return SystemConfig(
            log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
            log_file=os.getenv("LOG_FILE") or None,
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
            tasks_folder=os.getenv("TASKS_FOLDER", "./tasks") or "./tasks",
            max_body_preview=self._get_int("MAX_BODY_PREVIEW", DEFAULT_MAX_BODY_PREVIEW),
        )

    @staticmethod
    def _get_bool(key: str, default: bool = False) -> bool:
        """Convert environment variable to boolean"""
        value = os.getenv(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Convert environment variable to int"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")

    def validate(self) -> bool:
        """
        Validate configuration

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        account = self.account
        if not account.host:
            raise ConfigurationError("IMAP_HOST is not set")

        if not account.user or not account.password:
            raise ConfigurationError("Missing credentials: set IMAP_USER and IMAP_PASSWORD")

        if not 0 < account.port < 65536:
            raise ConfigurationError(f"IMAP_PORT out of range: {account.port}")

        if account.timeout <= 0:
            raise ConfigurationError(f"IMAP_TIMEOUT must be positive: {account.timeout}")

        if self.system.log_format not in ("text", "json"):
            raise ConfigurationError(
                f"LOG_FORMAT must be 'text' or 'json', got {self.system.log_format!r}"
            )

        if self.system.max_body_preview <= 0:
            raise ConfigurationError("MAX_BODY_PREVIEW must be positive")

        return True
