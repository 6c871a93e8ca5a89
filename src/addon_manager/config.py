"""Addon configuration store (YAML, injected path).

The config file path is always supplied by the caller; nothing in the
library looks it up from the environment.

Format:
    installations:
      - dir: /path/to/Interface/AddOns
        addons:
          - name: bagnon
            type: curse
            owned_dirs: [Bagnon, Bagnon_Config]

owned_dirs is persisted because it is the "old" side of the next upgrade's
diff. Archive contents are never written here.
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .exceptions import ConfigFormatError
from .exceptions import ConfigNotFoundError
from .schema import AddonConfig
from .schema import Installation
from .schema import Specification

logger = logging.getLogger(__name__)

DEFAULT_INSTALL_DIR = Path(r"C:\Program Files (x86)\World of Warcraft\Interface\AddOns")


class ConfigStore:
    """
    Reads and writes the addon configuration file.

    Example:
        >>> store = ConfigStore(config_path=Path.home() / ".addon-manager" / "config.yaml")
        >>> config = store.load()
        >>> config.installations[0].addons
    """

    def __init__(self, config_path: Path):
        """Initialize store with app-provided config path.

        Args:
            config_path: Path to the YAML config file (app determines location)
        """
        self.config_path = config_path

    def exists(self) -> bool:
        return self.config_path.exists()

    def load(self) -> AddonConfig:
        """
        Load configuration.

        Returns:
            Parsed AddonConfig

        Raises:
            ConfigNotFoundError: If the config file does not exist
            ConfigFormatError: If the file is not valid YAML or fails validation
        """
        if not self.config_path.exists():
            raise ConfigNotFoundError(
                f"Config file not found: {self.config_path}",
                context={"config_path": str(self.config_path)},
            )

        try:
            with open(self.config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            config = AddonConfig.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigFormatError(
                f"Config file is not formatted correctly: {e}",
                context={"config_path": str(self.config_path)},
            ) from e

        logger.debug(f"Loaded {len(config.installations)} installations from {self.config_path}")
        return config

    def save(self, config: AddonConfig) -> None:
        """
        Save configuration, creating parent directories as needed.

        Raises:
            ConfigError: If the file cannot be written
        """
        data = config.model_dump(mode="json", exclude_none=True)
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=False)
        except OSError as e:
            raise ConfigError(
                f"Unable to write config file: {e}",
                context={"config_path": str(self.config_path)},
            ) from e
        logger.debug(f"Saved config to {self.config_path}")

    def init(self, install_dir: Path = DEFAULT_INSTALL_DIR) -> AddonConfig:
        """Write a fresh config with a single empty installation."""
        config = AddonConfig(installations=[Installation(dir=install_dir)])
        self.save(config)
        logger.info(f"Initialized config at {self.config_path}")
        return config

    def add_addon(self, spec: Specification, install_dir: Path | None = None) -> AddonConfig:
        """
        Append a specification to an installation and save.

        Args:
            spec: Addon specification to add
            install_dir: Target installation dir (first installation if None)

        Returns:
            Updated config

        Raises:
            ConfigError: If no installation matches install_dir
        """
        config = self.load()
        installation = config.get_installation(install_dir)
        if installation is None:
            raise ConfigError(
                f"No installation handled at '{install_dir}'",
                context={"install_dir": str(install_dir)},
            )

        installation.addons.append(spec)
        self.save(config)
        logger.info(f"Added {spec.name} ({spec.type}) to {installation.dir}")
        return config
