"""
Configuration of reachability computations and logging setup.
"""

from dataclasses import asdict, dataclass, fields
import json
import logging
from typing import Any, Dict, Optional

import numpy as np

from .transform import TransformationMode

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class ReachConfig:
    """Parameters of a reachability computation."""
    steps: int = 10
    mode: TransformationMode = TransformationMode.AFO
    max_magnitude: float = np.inf
    decomposition_iterations: int = 0
    decomposition_weight: float = 0.5
    n_jobs: int = 1
    seed: Optional[int] = None
    verbose: bool = False

    def __post_init__(self):
        self.mode = TransformationMode(self.mode)
        self.max_magnitude = float(self.max_magnitude)

        if self.steps < 0:
            raise ValueError("steps must be non negative")
        if self.max_magnitude <= 0:
            raise ValueError("max_magnitude must be positive")
        if self.decomposition_iterations < 0:
            raise ValueError("decomposition_iterations must be non negative")
        if not 0 <= self.decomposition_weight <= 1:
            raise ValueError("decomposition_weight must be in [0, 1]")

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'ReachConfig':
        """
        Build a configuration from a dictionary. Missing keys take their
        default values; unknown keys are rejected.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        return cls(**raw)

    def to_dict(self) -> Dict[str, Any]:
        raw = asdict(self)
        raw['mode'] = self.mode.value
        # JSON has no infinity
        raw['max_magnitude'] = None if np.isinf(self.max_magnitude) else self.max_magnitude
        return raw


def load_reach_config(config_path: str) -> ReachConfig:
    """Load a reachability configuration from a JSON file."""
    with open(config_path, 'r') as f:
        raw = json.load(f)

    if raw.get('max_magnitude') is None:
        raw.pop('max_magnitude', None)

    return ReachConfig.from_dict(raw)


def configure_logging(verbose: bool = False) -> logging.Logger:
    """
    Install a stream handler on the package logger.

    :param verbose: Log DEBUG messages if True, INFO messages otherwise.
    :return: The package logger
    """
    logger = logging.getLogger('BundleReach')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not any(getattr(h, '_bundlereach', False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._bundlereach = True
        logger.addHandler(handler)

    return logger
