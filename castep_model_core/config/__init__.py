# castep_model_core/config/__init__.py
import copy
import logging
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "logging": {
        "level": "INFO",
        "console": True
    },
    "msi": {
        "cry_display": [192, 256],
        "periodic_type": 100,
        "space_group": "1 1",
        "cry_tolerance": 0.05
    },
    "cell": {
        "kpoints_list": [[0.0, 0.0, 0.0, 1.0]],
        "kpoints_grid": [1, 1, 1],
        "kpoints_mp_spacing": None,
        "kpoints_mp_offset": [0.0, 0.0, 0.0],
        "fix_all_cell": True,
        "fix_com": False,
        "external_efield": [0.0, 0.0, 0.0],
        "external_pressure": [0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
    },
    "castep": {
        "cut_off_energy": 380.0,
        "potentials_dir": None,
        "xc_functional": "PBE",
        "metals_method": "dm"
    },
    "elements": {
        "potential_suffix": "_00.usp",
        "potentials": {},
        "spins": {},
        "lcao_states": {}
    }
}

# Environment variable -> dot-separated config key
ENV_OVERRIDES = {
    "CASTEP_POTENTIALS_DIR": "castep.potentials_dir",
    "CASTEP_MODEL_LOG_LEVEL": "logging.level",
}


class ConfigManager:
    """Manages configuration settings for MSI parsing and CASTEP seed generation."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to a YAML configuration file. If None, the default configuration is used.
        """
        self.config_dir = Path(__file__).parent.resolve()
        self.default_config_path = self.config_dir / "default_config.yaml"
        self.user_config_path = Path(config_path) if config_path else None
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from default and user-specified files."""
        config = copy.deepcopy(DEFAULT_CONFIG)
        try:
            if self.default_config_path.exists():
                with open(self.default_config_path, 'r') as f:
                    self._deep_update(config, yaml.safe_load(f) or {})
            else:
                self.default_config_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.default_config_path, 'w') as f:
                    yaml.dump(DEFAULT_CONFIG, f, default_flow_style=False)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading default configuration: {str(e)}")

        if self.user_config_path and self.user_config_path.exists():
            try:
                with open(self.user_config_path, 'r') as f:
                    user_config = yaml.safe_load(f) or {}
                    self._deep_update(config, user_config)
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Error loading user configuration: {str(e)}")

        self._update_from_env(config)

        return config

    def _deep_update(self, d: Dict[str, Any], u: Dict[str, Any]) -> None:
        """Recursively update a dictionary."""
        for k, v in u.items():
            if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                self._deep_update(d[k], v)
            else:
                d[k] = v

    def _update_from_env(self, config: Dict[str, Any]) -> None:
        """Update configuration with environment variables."""
        for env_name, key_path in ENV_OVERRIDES.items():
            if env_name not in os.environ:
                continue
            *parents, leaf = key_path.split('.')
            section = config
            for key in parents:
                section = section.setdefault(key, {})
            section[leaf] = os.environ[env_name]

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-separated path.

        Args:
            key_path: Dot-separated path to the configuration key (e.g., 'msi.cry_tolerance')
            default: Default value to return if the key is not found

        Returns:
            The configuration value or the default value if the key is not found
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get a complete configuration section.

        Args:
            section: Top-level section name

        Returns:
            The configuration section as a dictionary
        """
        return self.config.get(section, {})


# Create a singleton instance
config_manager = ConfigManager()


def get_config(key_path: str, default: Any = None) -> Any:
    """Get a configuration value by dot-separated path."""
    return config_manager.get(key_path, default)
