"""
Caching utilities for saving and loading expensive reachability computations.

Provides functions to cache:
- Flowpipes (JSON, one half-space system per reached set)
- Bundles (pickle)
"""

import os
import pickle
import json
import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .bundle import Bundle
from .core import Flowpipe
from .polytope import Polytope

logger = logging.getLogger(__name__)


def _encode_offsets(b: np.ndarray) -> list:
    # JSON has no infinity; Polytope never stores +inf offsets
    return [float(v) for v in b]


def save_flowpipe(path: str, flowpipe: Flowpipe,
                  metadata: Dict[str, Any] = None) -> None:
    """
    Save a flowpipe as JSON.

    The file has the form
        {"metadata": {...},
         "steps": [[{"dim": d, "A": [[...]], "b": [...]}, ...], ...]}

    :param path: The JSON file path. Missing directories are created.
    :param flowpipe: The flowpipe
    :param metadata: Dict with computation_time, configuration, etc. (optional)
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    data = {
        'metadata': metadata or {},
        'steps': [[{'dim': polytope.dim, 'A': polytope.A.tolist(),
                    'b': _encode_offsets(polytope.b)}
                   for polytope in step]
                  for step in flowpipe]
    }

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def load_flowpipe(path: str, with_metadata: bool = False):
    """
    Load a flowpipe saved by save_flowpipe.

    :param path: The JSON file path
    :param with_metadata: Also return the saved metadata
    :return: The flowpipe, or (flowpipe, metadata) if with_metadata is True.
             Returns None if the file doesn't exist.
    """
    if not os.path.exists(path):
        return None

    with open(path, 'r') as f:
        data = json.load(f)

    try:
        steps = []
        for raw_step in data['steps']:
            step = []
            for raw in raw_step:
                A = np.array(raw['A'], dtype=float)
                b = np.array(raw['b'], dtype=float)
                if A.size == 0:
                    A = A.reshape(0, raw['dim'])
                step.append(Polytope(A, b))
            steps.append(step)
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed flowpipe file {path}: {e}") from e

    flowpipe = Flowpipe(steps)
    logger.debug("Loaded flowpipe with %d steps from %s", len(flowpipe), path)

    if with_metadata:
        return flowpipe, data.get('metadata', {})
    return flowpipe


def save_bundles(path: str, bundles: List[Bundle]) -> None:
    """
    Save a list of bundles with pickle.

    :param path: The pickle file path. Missing directories are created.
    :param bundles: The bundles
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, 'wb') as f:
        pickle.dump(list(bundles), f)


def load_bundles(path: str) -> Optional[List[Bundle]]:
    """
    Load a list of bundles saved by save_bundles.

    :return: The bundles. Returns None if the file doesn't exist.
    """
    if not os.path.exists(path):
        return None

    with open(path, 'rb') as f:
        bundles = pickle.load(f)

    if not all(isinstance(bundle, Bundle) for bundle in bundles):
        raise ValueError(f"{path} does not contain a list of bundles")

    return bundles
