"""
Configuration.

Environment settings, business constants and the engine configuration model.
"""

from compensation.config.compensation_config import (
    CompensationConfig,
    LevelBand,
    LevelSchedule,
    PlusStage,
    RateTable,
    default_config,
)


__all__ = [
    "CompensationConfig",
    "LevelBand",
    "LevelSchedule",
    "PlusStage",
    "RateTable",
    "default_config",
]
