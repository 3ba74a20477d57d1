"""
Adjustment recipe files for FilmSim

A recipe is a YAML or JSON mapping of AdjustmentParams fields, plus an
optional "simulation" key naming a film simulation.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import yaml

from ..processing.models import AdjustmentParams

logger = logging.getLogger(__name__)

JSON_SUFFIXES = {'.json'}


@dataclass
class Recipe:
    """Adjustment snapshot with the simulation it was made for."""
    params: AdjustmentParams
    simulation: Optional[str] = None

    def to_dict(self) -> dict:
        data = self.params.to_dict()
        if self.simulation:
            data['simulation'] = self.simulation
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'Recipe':
        data = dict(data or {})
        simulation = data.pop('simulation', None)
        return cls(params=AdjustmentParams.from_dict(data), simulation=simulation)

    def save(self, path: Union[str, Path]) -> Path:
        """Save recipe to file; JSON for .json, YAML otherwise"""
        path = Path(path)
        with open(path, 'w') as f:
            if path.suffix.lower() in JSON_SUFFIXES:
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        logger.debug(f"Saved recipe to {path}")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'Recipe':
        """Load recipe from a YAML or JSON file"""
        path = Path(path)
        with open(path, 'r') as f:
            if path.suffix.lower() in JSON_SUFFIXES:
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Recipe {path} must contain a mapping")
        return cls.from_dict(data)
