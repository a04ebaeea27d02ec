"""
End-to-end trim requests: result bundle, model lifecycle, strict mode and
persistence.
"""

import numpy as np
import pytest

from config import SolverSettings
from config_loader import load_trim_seed
from trim.errors import (
    ModelLoadError,
    TrimNotConvergedError,
    TrimSpecificationError,
    UnknownTargetFieldError,
)
from trim.persistence import bundle_from_record, load_trim, save_trim
from trim_sim import print_trim_summary, trim_sim

LEVEL = {'airspeed': 17, 'gamma': 0}


@pytest.fixture(scope="module")
def level_trim():
    from trim.model_handle import ModelRegistry
    from trim_sim import MODEL_FACTORIES

    seed = load_trim_seed('UltraStick25e')
    return trim_sim('UltraStick25e', seed, target=LEVEL, verbose=False,
                    registry=ModelRegistry(MODEL_FACTORIES))


class TestResultBundle:

    def test_converged(self, level_trim):
        assert level_trim.converged
        assert level_trim.variant == 'UltraStick25e'

    def test_block_layout(self, level_trim):
        assert set(level_trim.states) == {'attitude', 'rates', 'velocities',
                                          'inertial', 'engine_speed'}
        assert level_trim.actuators.shape == (5,)

    def test_wind_axes_order(self, level_trim):
        V, alpha, beta = level_trim.wind_axes
        solution = level_trim.solution
        assert V == solution.output_value('airspeed')
        assert alpha == solution.output_value('alpha')
        assert beta == solution.output_value('beta')
        assert V == pytest.approx(17.0, abs=1e-4)

    def test_accels(self, level_trim):
        np.testing.assert_array_equal(
            level_trim.accels,
            [level_trim.solution.output_value(name) for name in ('ax', 'ay', 'az')]
        )

    def test_target_echoed_normalized(self, level_trim):
        assert level_trim.target == {'airspeed': 17.0, 'gamma': 0.0, 'beta': 0.0,
                                     'l_flap': 0.0, 'r_flap': 0.0}

    def test_result_seeds_next_request(self, level_trim, registry):
        climb = trim_sim('UltraStick25e', level_trim, target={'airspeed': 17, 'gamma': 0.05},
                         verbose=False, registry=registry)
        assert climb.converged
        assert climb.solution.output_value('gamma') == pytest.approx(0.05, abs=1e-4)

    def test_target_taken_from_prior_trim(self, level_trim, registry):
        seed = level_trim.with_target(airspeed=18, gamma=0)
        result = trim_sim('UltraStick25e', seed, verbose=False, registry=registry)
        assert result.converged
        assert result.wind_axes[0] == pytest.approx(18.0, abs=1e-4)

    def test_summary(self, level_trim):
        text = print_trim_summary(level_trim)
        assert "TRIM SOLUTION: UltraStick25e" in text
        assert "Converged: Yes" in text
        assert "elevator" in text

    def test_verbose_prints_summary(self, registry, capsys):
        trim_sim('UltraStick25e', None, target=LEVEL, registry=registry)
        assert "TRIM SOLUTION" in capsys.readouterr().out


class TestModelLifecycle:

    def test_model_released_after_request(self, registry):
        trim_sim('UltraStick25e', None, target=LEVEL, verbose=False, registry=registry)
        assert not registry.is_loaded('UltraStick25e')

    def test_preloaded_model_stays_loaded(self, registry):
        model = registry.load('UltraStick25e')
        trim_sim('UltraStick25e', None, target=LEVEL, verbose=False, registry=registry)
        assert registry.is_loaded('UltraStick25e')
        assert registry.get('UltraStick25e') is model

    def test_specification_error_leaves_nothing_loaded(self, registry):
        with pytest.raises(UnknownTargetFieldError):
            trim_sim('UltraStick25e', None, target={'foobar': 1}, registry=registry)
        assert not registry.is_loaded('UltraStick25e')

    def test_strict_failure_releases_model(self, registry):
        settings = SolverSettings(max_iterations=20)
        with pytest.raises(TrimNotConvergedError) as excinfo:
            trim_sim('UltraStick25e', None, target={'airspeed': 17, 'gamma': 0, 'motor': 0.0},
                     settings=settings, verbose=False, strict=True, registry=registry)
        assert not excinfo.value.solution.converged
        assert not registry.is_loaded('UltraStick25e')

    def test_non_strict_returns_unconverged(self, registry):
        settings = SolverSettings(max_iterations=20)
        result = trim_sim('UltraStick25e', None,
                          target={'airspeed': 17, 'gamma': 0, 'motor': 0.0},
                          settings=settings, verbose=False, registry=registry)
        assert result.converged is False

    def test_unknown_model(self, registry):
        with pytest.raises(ModelLoadError):
            trim_sim('Cessna172', None, target=LEVEL, sim_type='UltraStick25e',
                     verbose=False, registry=registry)

    def test_unknown_variant(self, registry):
        with pytest.raises(TrimSpecificationError):
            trim_sim('UltraStick25e', None, target=LEVEL, sim_type='Cessna172',
                     verbose=False, registry=registry)


class TestPersistence:

    def test_save_and_load(self, level_trim, tmp_path, capsys):
        path = save_trim(tmp_path / 'level_trim', level_trim, verbose=True)
        assert path.suffix == '.mat'
        assert path.exists()
        assert "Trim conditions saved as" in capsys.readouterr().out

        record = load_trim(path)
        assert record['variant'] == 'UltraStick25e'
        assert record['target']['airspeed'] == 17.0
        np.testing.assert_allclose(record['states']['attitude'], level_trim.states['attitude'])
        np.testing.assert_allclose(record['inputs']['actuators'], level_trim.actuators)
        assert list(record['inputs']['names']) == ['elevator', 'rudder', 'aileron',
                                                   'l_flap', 'r_flap']
        np.testing.assert_allclose(record['outputs']['wind_axes'], level_trim.wind_axes)
        assert record['op_report']['method'] == 'SLSQP'
        assert record['op_report']['residual_norm'] <= 1e-5
        assert 'attitude' in record['op_spec']['states']

    def test_loaded_record_seeds_request(self, level_trim, tmp_path, registry):
        path = save_trim(tmp_path / 'seed.mat', level_trim)
        seed = bundle_from_record(load_trim(path))
        assert seed.target['airspeed'] == 17.0
        assert seed.states['engine_speed'].shape == (1,)

        result = trim_sim('UltraStick25e', seed, verbose=False, registry=registry)
        assert result.converged

    def test_file_save_option(self, registry, tmp_path):
        path = tmp_path / 'run.mat'
        trim_sim('UltraStick25e', None, target=LEVEL, verbose=False,
                 file_save=path, registry=registry)
        assert path.exists()
        assert load_trim(path)['variant'] == 'UltraStick25e'

    def test_missing_record(self, tmp_path):
        from scipy.io import savemat

        path = tmp_path / 'other.mat'
        savemat(str(path), {'x': np.zeros(3)})
        with pytest.raises(KeyError):
            load_trim(path)


class TestPackageSurface:

    def test_reexports_match_modules(self):
        import trim
        from trim.compiler import compile_trim_problem
        from trim.solver import solve_trim
        from trim.target import normalize_target

        assert trim.normalize_target is normalize_target
        assert trim.compile_trim_problem is compile_trim_problem
        assert trim.solve_trim is solve_trim
        assert set(trim.__all__) <= set(dir(trim))

    def test_library_logger_silent_by_default(self):
        import logging

        handlers = logging.getLogger('trim').handlers
        assert any(isinstance(h, logging.NullHandler) for h in handlers)

    def test_namespace_subpackages(self):
        import aero.coefficients
        import eom.six_dof

        assert aero.coefficients.compute_all_coefficients is not None
        assert eom.six_dof.RigidBodyModel is not None
