"""
Film simulations for FilmSim
"""

from .catalog import (
    Simulation, SimulationCatalog, SimulationDefinition,
    SIMULATION_DEFINITIONS, get_definition,
)

__all__ = [
    "Simulation",
    "SimulationCatalog",
    "SimulationDefinition",
    "SIMULATION_DEFINITIONS",
    "get_definition",
]
