#!/usr/bin/env python3
"""
Settings loader for the Kimblog deploy tool.
Supports configuration from kimblog.yml, kimblog.yaml, or kimblog.json files.
"""

import os
import json
import shlex
import yaml
from typing import Dict, Any, Optional


class KimblogSettings:
    """Load and manage Kimblog configuration settings."""

    # Default configuration, matching the hand-run deploy on the blog server
    DEFAULT_SETTINGS = {
        'site': '.',
        'source': os.path.join('source', '_posts'),
        'generated': 'public',
        'publish': '/var/www/html/kimblog',
        'generator': ['npx', 'hexo'],
        'clean_command': 'clean',
        'generate_command': 'g',
        'reload': ['nginx', '-s', 'reload'],
        'stop_on_error': False,
        'log_dir': 'logs',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['kimblog.yml', 'kimblog.yaml', 'kimblog.json']

    # Settings holding a command line; strings are split shell-style
    COMMAND_KEYS = ('generator', 'reload')

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self, config_file: Optional[str] = None) -> Dict[str, Any]:
        """
        Load settings from a configuration file.

        An explicitly given file must load; a discovered one that fails
        only produces a warning and the defaults are kept.

        Args:
            config_file: Explicit path to a config file (skips discovery)

        Returns:
            Dictionary of configuration settings
        """
        if config_file:
            self.config_file_path = config_file
            self._apply(self._load_config_file(config_file))
            return self.settings.copy()

        discovered = self._find_config_file()
        if discovered:
            self.config_file_path = discovered
            try:
                self._apply(self._load_config_file(discovered))
                print(f"Loaded configuration from: {os.path.relpath(discovered)}")
            except Exception as e:
                print(f"Warning: Failed to load config file {discovered}: {e}")

        return self.settings.copy()

    def _apply(self, loaded_settings: Dict[str, Any]) -> None:
        if not loaded_settings:
            return
        if not isinstance(loaded_settings, dict):
            raise ValueError("Configuration file must contain a mapping of settings")
        for key, value in loaded_settings.items():
            self.settings[key] = self._normalize(key, value)

    def _normalize(self, key: str, value: Any) -> Any:
        if key in self.COMMAND_KEYS and isinstance(value, str):
            return shlex.split(value)
        return value

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        if file_ext not in ['.yml', '.yaml', '.json']:
            raise ValueError(f"Unsupported config file format: {file_ext}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                return json.load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        except PermissionError:
            raise PermissionError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        filename = f'kimblog.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    # Custom YAML output with comments
                    f.write("# Kimblog Configuration File\n")
                    f.write("# Paths are relative to 'site' unless absolute\n\n")
                    f.write("# Content and build output\n")
                    f.write("site: .\n")
                    f.write("source: source/_posts\n")
                    f.write("generated: public\n\n")
                    f.write("# Where the web server serves the blog from\n")
                    f.write("publish: /var/www/html/kimblog\n\n")
                    f.write("# External generator\n")
                    f.write("generator: npx hexo\n")
                    f.write("clean_command: clean\n")
                    f.write("generate_command: g\n\n")
                    f.write("# Web server reload\n")
                    f.write("reload: nginx -s reload\n\n")
                    f.write("# Stop at the first failing step instead of running every step\n")
                    f.write("stop_on_error: false\n\n")
                    f.write("# Build logs (null disables the log file)\n")
                    f.write("log_dir: logs\n")
                elif file_format == 'json':
                    json.dump(self.DEFAULT_SETTINGS, f, indent=2)
                else:
                    raise ValueError(f"Unsupported config file format: {file_format}")
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is not None:
                merged[key] = self._normalize(key, value)

        return merged
