"""
Configuration loader for the acne progression engine.

Loads JSON configuration files and converts them to typed dataclass objects.
Errors name the file and the JSON path of the offending value.
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional

from .models import AcneSimConfig, EngineConfig, ParameterPreset
from ..utils.validators import (
    ValidationError,
    VALID_LOG_LEVELS,
    validate_range,
    validate_positive,
    validate_number,
    validate_in_set,
    validate_parameter_name,
    validate_control_value,
)


ENGINE_FILE = "engine.json"
PRESETS_FILE = "presets.json"


class ConfigError(Exception):
    """A config file is missing, unreadable, or holds an invalid value."""

    def __init__(self, message: str, file: Optional[str] = None,
                 path: Optional[str] = None):
        self.message = message
        self.file = file
        self.path = path

        full_msg = message
        if file:
            full_msg = f"[{file}] {full_msg}"
        if path:
            full_msg = f"{full_msg} (at {path})"

        super().__init__(full_msg)


class ConfigLoader:
    """
    Loads and parses engine configuration files.

    presets.json is optional; engine.json is required.

    Usage:
        loader = ConfigLoader("./config")
        config = loader.load_all()

        # Or load individual files:
        engine = loader.load_engine()
        presets = loader.load_presets()
    """

    def __init__(self, config_dir: str):
        """
        Initialize the config loader.

        Args:
            config_dir: Path to directory containing config JSON files
        """
        self.config_dir = Path(config_dir)

        if not self.config_dir.exists():
            raise ConfigError(f"Config directory not found: {config_dir}")

    def _load_json(self, filename: str) -> Dict[str, Any]:
        """Load a JSON file from the config directory."""
        filepath = self.config_dir / filename

        if not filepath.exists():
            raise ConfigError(f"Config file not found: {filepath}", file=filename)

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON: {e}", file=filename)

        if not isinstance(data, dict):
            raise ConfigError("Top-level value must be an object", file=filename)
        return data

    def _get(self, data: dict, key: str, default: Any = None,
             required: bool = False, file: str = "") -> Any:
        """Get a value from a dict with optional requirement check."""
        if key not in data:
            if required:
                raise ConfigError(f"Missing required field: {key}", file=file)
            return default
        return data[key]

    # =========================================================================
    # Engine Loading
    # =========================================================================

    def load_engine(self) -> EngineConfig:
        """Load engine.json."""
        data = self._load_json(ENGINE_FILE)
        defaults = EngineConfig()
        section = data.get("engine", data)

        try:
            tick_hours = validate_positive(
                validate_number(self._get(section, "tick_hours", defaults.tick_hours),
                                "tick_hours"),
                "tick_hours", allow_zero=False)
            accelerator = validate_range(
                validate_number(self._get(section, "progression_accelerator",
                                          defaults.progression_accelerator),
                                "progression_accelerator"),
                0.1, 10.0, "progression_accelerator")
            log_interval = validate_positive(
                validate_number(self._get(section, "log_interval_hours",
                                          defaults.log_interval_hours),
                                "log_interval_hours"),
                "log_interval_hours")
            sample_interval = validate_positive(
                validate_number(self._get(section, "sample_interval_hours",
                                          defaults.sample_interval_hours),
                                "sample_interval_hours"),
                "sample_interval_hours", allow_zero=False)
            log_level = validate_in_set(
                str(self._get(section, "log_level", defaults.log_level)).lower(),
                VALID_LOG_LEVELS, "log_level")
        except ValidationError as e:
            raise ConfigError(e.message, file=ENGINE_FILE, path=f"engine.{e.field}")

        growth = self._get(section, "incubation_bacteria_growth",
                           defaults.incubation_bacteria_growth)
        if not isinstance(growth, bool):
            raise ConfigError("must be true or false", file=ENGINE_FILE,
                              path="engine.incubation_bacteria_growth")

        return EngineConfig(
            tick_hours=float(tick_hours),
            progression_accelerator=float(accelerator),
            incubation_bacteria_growth=growth,
            log_interval_hours=float(log_interval),
            log_level=log_level,
            sample_interval_hours=float(sample_interval),
        )

    # =========================================================================
    # Preset Loading
    # =========================================================================

    def load_presets(self) -> Dict[str, ParameterPreset]:
        """Load presets.json (empty dict if the file is absent)."""
        if not (self.config_dir / PRESETS_FILE).exists():
            return {}

        data = self._load_json(PRESETS_FILE)

        presets = {}
        for preset_id, preset_data in data.get("presets", {}).items():
            # Skip description fields
            if preset_id.startswith('_'):
                continue
            presets[preset_id] = self._parse_preset(preset_id, preset_data)

        return presets

    def _parse_preset(self, preset_id: str, data: dict) -> ParameterPreset:
        """Parse a single preset."""
        path = f"presets.{preset_id}"

        parameters = {}
        for name, value in self._get(data, "parameters", {}).items():
            try:
                validate_parameter_name(name, name)
                parameters[name] = int(round(validate_control_value(value, name)))
            except ValidationError as e:
                raise ConfigError(e.message, file=PRESETS_FILE,
                                  path=f"{path}.parameters.{e.field}")

        accelerator = data.get("progression_accelerator")
        if accelerator is not None:
            try:
                validate_range(validate_number(accelerator, "progression_accelerator"),
                               0.1, 10.0, "progression_accelerator")
            except ValidationError as e:
                raise ConfigError(e.message, file=PRESETS_FILE,
                                  path=f"{path}.{e.field}")
            accelerator = float(accelerator)

        return ParameterPreset(
            id=preset_id,
            name=data.get("name", preset_id),
            description=data.get("description", ""),
            parameters=parameters,
            progression_accelerator=accelerator,
        )

    # =========================================================================
    # Load All
    # =========================================================================

    def load_all(self) -> AcneSimConfig:
        """
        Load all configuration files and return a complete AcneSimConfig.

        Returns:
            Fully populated AcneSimConfig object

        Raises:
            ConfigError: If a config file is missing or malformed
        """
        return AcneSimConfig(
            engine=self.load_engine(),
            presets=self.load_presets(),
        )


def load_config(config_dir: str) -> AcneSimConfig:
    """
    Convenience function to load all configuration.

    Args:
        config_dir: Path to config directory

    Returns:
        Fully populated AcneSimConfig object
    """
    loader = ConfigLoader(config_dir)
    return loader.load_all()
