"""
Configuration data models for the acne progression engine.

These dataclasses represent the structure of configuration loaded from
JSON files. Every field has a default, so an engine can be built without
any configuration files at all.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict

from ..core.clock import DEFAULT_TICK_HOURS


# =============================================================================
# Engine Configuration
# =============================================================================

@dataclass
class EngineConfig:
    """Engine-wide settings."""
    tick_hours: float = DEFAULT_TICK_HOURS      # Default dt for update()
    progression_accelerator: float = 1.0        # Initial global multiplier (0.1-10)
    incubation_bacteria_growth: bool = True     # Bacteria may grow before a comedone forms
    log_interval_hours: float = 10.0            # Periodic state log, 0 disables
    log_level: str = "info"
    sample_interval_hours: float = 1.0          # Level timeline sampling


# =============================================================================
# Presets
# =============================================================================

@dataclass
class ParameterPreset:
    """A named set of control parameter values."""
    id: str
    name: str
    description: str = ""
    parameters: Dict[str, int] = field(default_factory=dict)
    progression_accelerator: Optional[float] = None


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass
class AcneSimConfig:
    """
    Master configuration container.

    Holds the engine settings and the parameter presets.
    """
    engine: EngineConfig = field(default_factory=EngineConfig)
    presets: Dict[str, ParameterPreset] = field(default_factory=dict)

    def get_preset(self, preset_id: str) -> Optional[ParameterPreset]:
        """Get a preset by ID."""
        return self.presets.get(preset_id)

    def get_valid_preset_ids(self) -> List[str]:
        """Get all preset IDs in load order."""
        return list(self.presets.keys())
