"""
Film simulation catalog for FilmSim

A simulation pairs a 3D LUT with a partial parameter override. The
built-in definitions describe the Fujifilm film simulations; their LUTs are
read from "<id>.cube" files in a directory at startup.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from tqdm import tqdm

from ..processing.errors import FormatError
from ..processing.models import AdjustmentParams
from ..processing.color.lut import LUT3D, load_cube, DEFAULT_IDENTITY_TOLERANCE

logger = logging.getLogger(__name__)

# Selecting a simulation resets the basic adjustments
DEFAULT_SIMULATION_PARAMS: Dict[str, Any] = {
    'exposure': 0.0,
    'temperature': 5500.0,
    'tint': 0.0,
    'contrast': 0.0,
    'hsl': {'hue': 0.0, 'saturation': 0.0, 'luminance': 0.0},
}


@dataclass(frozen=True)
class SimulationDefinition:
    """Static description of a film simulation."""
    id: str
    name: str
    description: str
    year: int
    lut_size: int  # Nominal grid size; the file's declaration wins
    default_params: Dict[str, Any] = field(
        default_factory=lambda: dict(DEFAULT_SIMULATION_PARAMS))

    @property
    def filename(self) -> str:
        return f"{self.id}.cube"


def _definition(id: str, name: str, description: str, year: int,
                lut_size: int = 32) -> SimulationDefinition:
    return SimulationDefinition(id=id, name=name, description=description,
                                year=year, lut_size=lut_size)


SIMULATION_DEFINITIONS: List[SimulationDefinition] = [
    # Color
    _definition('provia', 'PROVIA / STANDARD', 'balanced neutral everyday', 1990),
    _definition('velvia', 'Velvia / VIVID', 'punchy saturated landscape', 1991),
    _definition('astia', 'ASTIA / SOFT', 'soft gentle skin-tones', 2000, lut_size=64),
    _definition('classic-chrome', 'CLASSIC CHROME', 'muted documentary contrast', 2014),
    _definition('pro-neg-hi', 'PRO Neg. Hi', 'crisp contrast portrait', 2012),
    _definition('pro-neg-std', 'PRO Neg. Std', 'soft neutral portrait', 2012),
    _definition('classic-neg', 'CLASSIC Neg.', 'retro punchy consumer-film', 2019),
    _definition('nostalgic-neg', 'NOSTALGIC Neg.', 'warm vintage cinema', 2022),
    _definition('eterna', 'ETERNA / CINEMA', 'flat cinematic soft', 2017),
    _definition('eterna-bleach-bypass', 'ETERNA Bleach Bypass', 'desaturated high contrast', 2020),
    _definition('reala-ace', 'REALA ACE', 'neutral faithful punch', 2024),

    # Monochrome
    _definition('acros', 'ACROS', 'clean refined monochrome', 1964, lut_size=33),
    _definition('acros-ye', 'ACROS + Ye Filter', 'slightly lighter skies', 1964, lut_size=33),
    _definition('acros-r', 'ACROS + R Filter', 'dramatic dark skies', 1964, lut_size=33),
    _definition('acros-g', 'ACROS + G Filter', 'better skin balance', 1964, lut_size=33),
    _definition('monochrome', 'MONOCHROME', 'plain neutral black-white', 1930, lut_size=33),
    _definition('monochrome-ye', 'MONOCHROME + Ye Filter', 'mild contrast boost', 1930, lut_size=33),
    _definition('monochrome-r', 'MONOCHROME + R Filter', 'hard dark sky look', 1930, lut_size=33),
    _definition('monochrome-g', 'MONOCHROME + G Filter', 'smooth skin contrast', 1930, lut_size=33),
    _definition('sepia', 'SEPIA', 'warm brown vintage', 1880, lut_size=33),
]


def get_definition(simulation_id: str) -> Optional[SimulationDefinition]:
    """Look up a built-in definition by id."""
    for definition in SIMULATION_DEFINITIONS:
        if definition.id == simulation_id:
            return definition
    return None


@dataclass(frozen=True)
class Simulation:
    """A loaded simulation: definition plus its lookup table."""
    definition: SimulationDefinition
    lut: Optional[LUT3D] = None

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def lut_size(self) -> int:
        return self.lut.size if self.lut is not None else self.definition.lut_size

    def apply_defaults(self, params: AdjustmentParams) -> AdjustmentParams:
        """Overlay this simulation's default parameters on a snapshot."""
        return params.merged(self.definition.default_params)

    def describe(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.definition.description,
            'year': self.definition.year,
            'lut_size': self.lut_size,
        }


class SimulationCatalog:
    """
    Immutable collection of available simulations.

    Loading never fails as a whole: a simulation whose LUT is missing,
    unreadable, malformed or an identity table is logged and skipped.
    """

    def __init__(self, simulations: Sequence[Simulation] = ()):
        self._simulations: Dict[str, Simulation] = {s.id: s for s in simulations}

    @classmethod
    def load(cls, directory: Union[str, Path],
             definitions: Sequence[SimulationDefinition] = SIMULATION_DEFINITIONS,
             tolerance: float = DEFAULT_IDENTITY_TOLERANCE,
             show_progress: bool = False) -> 'SimulationCatalog':
        """
        Load simulation LUTs from a directory.

        Args:
            directory: Directory containing "<id>.cube" files
            definitions: Definitions to load
            tolerance: Identity detection tolerance
            show_progress: Display a progress bar

        Returns:
            SimulationCatalog with the simulations that loaded
        """
        directory = Path(directory)
        loaded: List[Simulation] = []

        for definition in tqdm(definitions, desc="Loading simulations",
                               unit="lut", disable=not show_progress):
            path = directory / definition.filename
            if not path.exists():
                logger.warning(f"No LUT for simulation '{definition.id}' at {path}, skipping")
                continue

            try:
                lut = load_cube(path)
            except (OSError, FormatError) as e:
                logger.warning(f"Failed to load LUT for '{definition.id}', skipping: {e}")
                continue

            if lut.is_identity(tolerance):
                logger.info(f"LUT for '{definition.id}' is an identity table, skipping")
                continue

            if lut.size != definition.lut_size:
                logger.debug(f"'{definition.id}' declares size {lut.size}, "
                             f"expected {definition.lut_size}")

            loaded.append(Simulation(definition=definition, lut=lut))

        logger.info(f"Loaded {len(loaded)} of {len(definitions)} simulations from {directory}")
        return cls(loaded)

    def get(self, simulation_id: str) -> Optional[Simulation]:
        return self._simulations.get(simulation_id)

    def __getitem__(self, simulation_id: str) -> Simulation:
        return self._simulations[simulation_id]

    def __contains__(self, simulation_id: object) -> bool:
        return simulation_id in self._simulations

    def __iter__(self) -> Iterator[Simulation]:
        return iter(self._simulations.values())

    def __len__(self) -> int:
        return len(self._simulations)

    @property
    def ids(self) -> List[str]:
        return list(self._simulations)
