# tests/conftest.py
import sys
from pathlib import Path

import numpy as np
import pytest

# Resolve repo root no matter where pytest is run from
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from localizer.types import PointCloud, RegistrationResult  # noqa: E402


class ScriptedRegistrar:
    """Registrar stand-in: echoes the guess and reports scripted fitness."""

    def __init__(self, scores=None, step=None, converged=True):
        self.scores = list(scores or [])
        self.step = step
        self.converged = converged
        self.calls = []

    def register(self, source, target, init_guess, params):
        guess = np.array(init_guess, dtype=np.float64)
        self.calls.append((source, target, guess, params))
        fitness = self.scores.pop(0) if self.scores else 0.01
        T = guess if self.step is None else guess @ self.step
        return RegistrationResult(T, fitness, self.converged, 1)


class CountingDownsampler:
    """Downsampler stand-in that keeps every point and counts calls."""

    def __init__(self):
        self.calls = []

    def downsample(self, cloud, leaf_size):
        self.calls.append((cloud, leaf_size))
        return cloud


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def box_cloud(rng):
    pts = rng.uniform([0.0, 0.0, 0.0], [10.0, 8.0, 4.0], size=(300, 3))
    return PointCloud(np.column_stack([pts, rng.uniform(0, 100, 300)]), "world")
