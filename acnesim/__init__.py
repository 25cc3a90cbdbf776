"""
Acne lesion progression simulation engine.

Models sebum, bacteria, inflammation, neutrophils, pus and healing as
coupled quantities that drive a lesion through its clinical stages.

Main entry points:
- AcneSimulation: The engine class a renderer or UI drives
- SimulationRunner: For running headless simulations and demos
- load_config: For loading configuration from JSON files

Example:
    >>> from acnesim import AcneSimulation
    >>> engine = AcneSimulation()
    >>> engine.set_bacteria_param(400)
    400
    >>> engine.update(1.0)
    >>> engine.simulation_stage
    <Stage.INCUBATION: 'incubation'>
"""

__version__ = "1.0.0"
__author__ = "AcneSim Project"

# Lazy imports to avoid circular dependencies
def __getattr__(name):
    if name == 'AcneSimulation':
        from .engine import AcneSimulation
        return AcneSimulation
    elif name == 'EngineStats':
        from .engine import EngineStats
        return EngineStats
    elif name == 'Stage':
        from .core.stages import Stage
        return Stage
    elif name == 'StageInfo':
        from .core.stages import StageInfo
        return StageInfo
    elif name == 'SimulationRunner':
        from .simulation import SimulationRunner
        return SimulationRunner
    elif name == 'SimulationResults':
        from .simulation import SimulationResults
        return SimulationResults
    elif name == 'run_demo':
        from .simulation import run_demo
        return run_demo
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    'AcneSimulation',
    'EngineStats',
    'Stage',
    'StageInfo',
    'SimulationRunner',
    'SimulationResults',
    'run_demo',
    'load_config',
]
