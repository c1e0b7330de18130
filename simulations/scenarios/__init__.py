"""
Simulation scenarios for comparing rate managers.

Scenarios:
- sweep_test: varies the mean channel SNR and compares all strategies.

Generates line charts of goodput and delivery ratio against SNR.
"""

from simulations.scenarios.sweep_test import (
    SCENARIOS,
    SNR_LEVELS,
    STRATEGIES,
    create_scenarios,
)

__all__ = [
    "SCENARIOS",
    "SNR_LEVELS",
    "STRATEGIES",
    "create_scenarios",
]
