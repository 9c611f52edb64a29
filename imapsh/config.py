"""
Configuration management for the IMAP shell.

Handles loading of configuration files with support for local overrides
and reading credentials from the environment.
"""

import copy
import json
import os
from typing import Dict, Any, Optional

from dotenv import find_dotenv, load_dotenv


DEDUP_MODES = ("delete", "report")


class ConfigManager:
    """Handles configuration loading and validation."""

    DEFAULT_CONFIG = {
        "mail_settings": {
            "imap_port": 993,
            "default_server": None
        },
        "shell_settings": {
            "batch_size": 100,
            "sort_charset": "UTF-8",
            "dedup_mode": "delete",
            "dedup_header": "Message-ID",
            "verbose": True
        }
    }

    def __init__(self, config_file: str = "config.json", local_config_file: str = "config.local.json"):
        """Initialize configuration manager.

        Args:
            config_file: Main configuration file path
            local_config_file: Local overrides configuration file path
        """
        self.config_file = config_file
        self.local_config_file = local_config_file
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from files with fallback to defaults."""
        config = copy.deepcopy(self.DEFAULT_CONFIG)

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                user_config = json.load(f)
            self._merge_config(config, user_config)
        except FileNotFoundError:
            pass
        except json.JSONDecodeError as e:
            print(f"[!] Error parsing {self.config_file}: {e}, using default configuration")

        # Load local overrides
        try:
            with open(self.local_config_file, "r", encoding="utf-8") as f:
                local_config = json.load(f)
            self._merge_config(config, local_config)
            print(f"[i] Loaded local configuration overrides from {self.local_config_file}")
        except FileNotFoundError:
            pass
        except json.JSONDecodeError as e:
            print(f"[!] Error parsing {self.local_config_file}: {e}, ignoring local config")

        return config

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> None:
        """Recursively merge configuration dictionaries.

        Args:
            base: Base configuration dictionary to merge into
            override: Override configuration dictionary to merge from
        """
        for section, values in override.items():
            if section not in base:
                base[section] = values
            elif isinstance(values, dict) and isinstance(base[section], dict):
                self._merge_config(base[section], values)
            else:
                base[section] = values

    def get_mail_settings(self) -> Dict[str, Any]:
        """Get mail server settings."""
        return self.config["mail_settings"]

    def get_shell_settings(self) -> Dict[str, Any]:
        """Get interactive shell settings."""
        return self.config["shell_settings"]

    def get_port(self) -> int:
        return int(self.config["mail_settings"]["imap_port"])

    def get_batch_size(self) -> int:
        """Get the maximum number of message ids sent in one STORE command."""
        try:
            batch_size = int(self.config["shell_settings"]["batch_size"])
        except (TypeError, ValueError):
            return self.DEFAULT_CONFIG["shell_settings"]["batch_size"]
        return max(batch_size, 1)

    def get_dedup_mode(self) -> str:
        """Get the duplicate collapse mode, either "delete" or "report"."""
        mode = str(self.config["shell_settings"]["dedup_mode"]).lower()
        if mode not in DEDUP_MODES:
            print(f"[!] Unknown dedup_mode '{mode}', using 'delete'")
            return "delete"
        return mode

    def is_verbose(self) -> bool:
        return bool(self.config["shell_settings"]["verbose"])

    def get_credentials(self) -> tuple[Optional[str], Optional[str]]:
        """Get IMAP credentials from the environment.

        A .env file in the working directory is loaded first, without
        overriding variables that are already set.

        Returns:
            Tuple of (username, password); either may be None
        """
        load_dotenv(find_dotenv(usecwd=True))
        return os.getenv("IMAP_USER"), os.getenv("IMAP_PASS")
