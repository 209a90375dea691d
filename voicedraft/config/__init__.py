"""Simple YAML configuration loader for VoiceDraft."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional
import logging

from ..exceptions import ConfigurationError
from ..llm.factory import ProviderType, parse_provider_type
from ..models.mode import ModeConfig

logger = logging.getLogger(__name__)

PROVIDER_ENV_VAR = "AI_PROVIDER"


class VoiceDraftConfig:
    """VoiceDraft configuration loader."""

    def __init__(self, config_path: Optional[str]):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file
        """
        if not config_path:
            raise ConfigurationError("No configuration file given (use --config)")
        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if not config:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (('transcription', 'google_credentials_path'),
                             ('logging', 'file_path')):
            if isinstance(config.get(section), dict) and config[section].get(key):
                path = config[section][key]
                if not os.path.isabs(path):
                    config[section][key] = str(config_dir / path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'llm.provider').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_language(self) -> str:
        return self.get('transcription.language', 'en')

    def get_provider_type(self, environ: Optional[Mapping[str, str]] = None) -> ProviderType:
        """Selected LLM provider; the AI_PROVIDER variable overrides the file."""
        environ = os.environ if environ is None else environ
        return parse_provider_type(environ.get(PROVIDER_ENV_VAR) or self.get('llm.provider'))

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path; fails if not configured or missing."""
        creds_path = self.get('transcription.google_credentials_path')
        if not creds_path:
            raise ConfigurationError("transcription.google_credentials_path is not configured")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise ConfigurationError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_modes(self) -> List[ModeConfig]:
        """Parse the dictation modes list."""
        modes = []
        for entry in self.get('modes', []) or []:
            if not isinstance(entry, dict) or 'id' not in entry:
                raise ConfigurationError(f"Invalid mode entry: {entry!r}")
            modes.append(ModeConfig(
                id=str(entry['id']),
                label=str(entry.get('label', entry['id'])),
                description=str(entry.get('description', '')),
                ai_enabled=bool(entry.get('ai_enabled', False)),
                ai_prompt=entry.get('ai_prompt'),
            ))
        return modes

    def get_mode(self, mode_id: str) -> ModeConfig:
        for mode in self.get_modes():
            if mode.id == mode_id:
                return mode
        raise ConfigurationError(f"Mode not found: {mode_id}")
