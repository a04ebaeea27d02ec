"""
Airframe YAML loader: actuator limits, trim seeds and solver overrides.
"""

import numpy as np
import pytest

from config import SolverSettings
from config_loader import (
    get_available_airframes,
    load_actuator_limits,
    load_solver_settings,
    load_trim_seed,
)


def write_yaml(tmp_path, text):
    path = tmp_path / 'airframes.yaml'
    path.write_text(text)
    return path


class TestAirframes:

    def test_available(self):
        assert set(get_available_airframes()) == {'UltraStick25e', 'UltraStick120', 'miniMUTT'}

    def test_missing_file(self, tmp_path):
        assert get_available_airframes(tmp_path / 'missing.yaml') == []

    def test_limits(self):
        limits = load_actuator_limits('UltraStick25e')
        assert limits['elevator'] == {'pos_lim': 0.3491, 'neg_lim': -0.3491}
        assert 'l_flap' not in limits

    def test_case_insensitive(self):
        assert load_actuator_limits('ultrastick120') == load_actuator_limits('UltraStick120')

    def test_unknown_airframe(self):
        with pytest.raises(ValueError, match="Available"):
            load_actuator_limits('Cessna172')


class TestTrimSeed:

    def test_level_seed(self):
        seed = load_trim_seed('UltraStick25e')
        V, alpha, beta = seed.wind_axes
        assert V == 17.0
        assert beta == 0.0
        np.testing.assert_allclose(seed.states['velocities'],
                                   [V * np.cos(alpha), 0.0, V * np.sin(alpha)])
        assert seed.states['inertial'][2] == -100.0

    def test_engine_speed_follows_motor(self):
        from config import ULTRASTICK25E

        seed = load_trim_seed('UltraStick25e')
        assert seed.states['engine_speed'][0] == pytest.approx(
            seed.motor * ULTRASTICK25E.engine.omega_max)

    def test_aeroelastic_seed_has_flex_blocks(self):
        seed = load_trim_seed('miniMUTT')
        assert 'flex' in seed.states
        assert 'engine_speed' not in seed.states


class TestSolverSettings:

    def test_defaults_from_file(self):
        settings = load_solver_settings()
        assert settings.method == 'SLSQP'
        assert settings.tolerance == 1e-5
        assert settings.polish is True

    def test_overrides_cast(self, tmp_path):
        path = write_yaml(tmp_path, "solver:\n  max_iterations: 50.0\n  tolerance: 1\n")
        settings = load_solver_settings(path)
        assert settings.max_iterations == 50
        assert isinstance(settings.max_iterations, int)
        assert settings.tolerance == 1.0
        assert settings.method == SolverSettings().method

    def test_unknown_key(self, tmp_path):
        path = write_yaml(tmp_path, "solver:\n  max_iter: 50\n")
        with pytest.raises(ValueError, match="max_iter"):
            load_solver_settings(path)
