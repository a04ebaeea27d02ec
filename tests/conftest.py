"""Shared fixtures for the trim tests."""

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def registry():
    """Fresh registry of the reference models (nothing loaded)."""
    from trim.model_handle import ModelRegistry
    from trim_sim import MODEL_FACTORIES
    return ModelRegistry(MODEL_FACTORIES)


@pytest.fixture(scope="session")
def us25_model():
    from config import ULTRASTICK25E
    from eom.six_dof import RigidBodyModel
    return RigidBodyModel(ULTRASTICK25E)


@pytest.fixture(scope="session")
def minimutt_model():
    from config import MINIMUTT
    from eom.aeroelastic import AeroelasticModel
    return AeroelasticModel(MINIMUTT)


@pytest.fixture(scope="session")
def us25_limits():
    from config_loader import load_actuator_limits
    return load_actuator_limits('UltraStick25e')
