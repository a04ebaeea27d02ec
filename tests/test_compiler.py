"""
Constraint compiler: baseline flags, per-target relaxations, inputs and
actuator bounds, seed validation and immutability.
"""

import dataclasses
import logging

import numpy as np
import pytest

from config import DEFAULT_SURFACE_LIMIT
from trim.compiler import (
    TrimProblemBuilder,
    compile_trim_problem,
    count_constraints,
    surface_bounds,
)
from trim.errors import TrimSpecificationError
from trim.problem import Output, VariableSpec
from trim.target import normalize_target
from trim.variants import get_variant


def compile_for(raw_target, variant='UltraStick25e', **kwargs):
    return compile_trim_problem(normalize_target(raw_target, variant), variant, **kwargs)


class TestBaseline:
    """Straight and level: topology defaults only."""

    @pytest.fixture
    def problem(self):
        return compile_for({'airspeed': 17, 'gamma': 0})

    def test_attitude_flags(self, problem):
        spec = problem.state_block('attitude').spec
        np.testing.assert_array_equal(spec.known, [False, False, True])
        np.testing.assert_array_equal(spec.steady_state, [True, True, True])

    def test_inertial_flags(self, problem):
        spec = problem.state_block('inertial').spec
        np.testing.assert_array_equal(spec.known, [False, False, True])
        np.testing.assert_array_equal(spec.steady_state, [False, False, False])
        assert spec.upper[2] == 0.0

    def test_velocity_bound(self, problem):
        assert problem.state_block('velocities').spec.lower[0] == 0.0

    def test_targeted_outputs_known(self, problem):
        airspeed = problem.output(Output.AIRSPEED).spec
        assert airspeed.known[0]
        assert airspeed.value[0] == 17.0
        assert problem.output('beta').spec.known[0]
        assert problem.output('gamma').spec.known[0]
        assert not problem.output('alpha').spec.known[0]
        assert not problem.output('az').spec.known[0]

    def test_euler_rates_inactive(self, problem):
        assert not problem.output(Output.EULER_RATES).active
        assert problem.output(Output.AIRSPEED).active

    def test_output_catalogue_order(self, problem):
        names = [spec.name for spec in problem.outputs]
        assert names[:4] == ['airspeed', 'beta', 'alpha', 'altitude']
        assert names[-1] == 'euler_rates'
        assert len(names) == 15

    def test_balanced(self, problem):
        counts = count_constraints(problem)
        assert counts['free'] == 15
        assert counts['equations'] == 13

    def test_seeded_from_default(self, problem):
        seed = get_variant('UltraStick25e').default_seeds()
        np.testing.assert_array_equal(problem.state_block('velocities').spec.value,
                                      seed.states['velocities'])


class TestRelaxations:
    """Each targeted output carries its secondary relaxation."""

    def test_psidot_frees_heading_steady_state(self):
        problem = compile_for({'airspeed': 17, 'gamma': 0, 'psidot': 0.349})
        euler = problem.output(Output.EULER_RATES)
        assert euler.active
        np.testing.assert_array_equal(euler.spec.known, [False, False, True])
        assert euler.spec.value[2] == pytest.approx(0.349)
        np.testing.assert_array_equal(problem.state_block('attitude').spec.steady_state,
                                      [True, True, False])

    def test_zero_euler_rate_activates_without_relaxing(self):
        problem = compile_for({'airspeed': 17, 'phidot': 0.0})
        assert problem.output(Output.EULER_RATES).active
        assert problem.output(Output.EULER_RATES).spec.known[0]
        np.testing.assert_array_equal(problem.state_block('attitude').spec.steady_state,
                                      [True, True, True])

    @pytest.mark.parametrize("name, component", [('p', 0), ('q', 1), ('r', 2)])
    def test_rate_targets_free_attitude_steady_state(self, name, component):
        problem = compile_for({'airspeed': 17, name: 0.1})
        steady = problem.state_block('attitude').spec.steady_state
        assert not steady[component]
        assert steady.sum() == 2
        assert problem.output(name).spec.value[0] == pytest.approx(0.1)

    def test_altitude_frees_ze(self):
        problem = compile_for({'airspeed': 17, 'altitude': 150})
        assert not problem.state_block('inertial').spec.known[2]
        assert problem.output('altitude').spec.value[0] == 150.0

    def test_phi_frees_heading_steady_state(self):
        problem = compile_for({'airspeed': 17, 'phi': 0.2})
        spec = problem.state_block('attitude').spec
        assert not spec.known[0]
        assert not spec.steady_state[2]

    def test_nonzero_beta_keeps_roll_free(self):
        problem = compile_for({'airspeed': 17, 'beta': 0.05})
        assert not problem.state_block('attitude').spec.known[0]
        assert problem.output('beta').spec.value[0] == pytest.approx(0.05)

    def test_free_beta_not_constrained(self):
        problem = compile_for({'airspeed': 17, 'beta': []})
        assert not problem.output('beta').spec.known[0]


class TestInputs:

    def test_motor_free_from_seed(self):
        problem = compile_for({'airspeed': 17})
        motor = problem.inputs.motor
        assert not motor.known[0]
        assert motor.value[0] == 0.5
        assert (motor.lower[0], motor.upper[0]) == (0.0, 1.0)

    def test_motor_targeted(self):
        problem = compile_for({'airspeed': 17, 'throttle': 0.7})
        assert problem.inputs.motor.known[0]
        assert problem.inputs.motor.value[0] == pytest.approx(0.7)

    def test_actuators(self):
        problem = compile_for({'airspeed': 17, 'elevator': -0.05})
        actuators = problem.inputs.actuators
        assert problem.inputs.names == ('elevator', 'rudder', 'aileron', 'l_flap', 'r_flap')
        np.testing.assert_array_equal(actuators.known, [True, False, False, True, True])
        assert actuators.value[0] == pytest.approx(-0.05)

    def test_missing_limit_uses_default(self):
        problem = compile_for({'airspeed': 17}, actuator_limits={})
        actuators = problem.inputs.actuators
        np.testing.assert_array_equal(actuators.lower, np.full(5, -0.4363))
        np.testing.assert_array_equal(actuators.upper, np.full(5, 0.4363))

    def test_limit_table_applied(self, us25_limits):
        problem = compile_for({'airspeed': 17}, actuator_limits=us25_limits)
        actuators = problem.inputs.actuators
        assert actuators.upper[0] == pytest.approx(0.3491)
        assert actuators.lower[1] == pytest.approx(-0.5236)
        # flaps have no entry in the table
        assert actuators.upper[3] == DEFAULT_SURFACE_LIMIT
        assert actuators.lower[4] == -DEFAULT_SURFACE_LIMIT

    def test_camel_case_keys(self):
        lower, upper = surface_bounds(('elevator',), {'elevator': {'PosLim': 0.2, 'NegLim': -0.3}})
        assert (lower[0], upper[0]) == (-0.3, 0.2)

    def test_malformed_entry_falls_back(self):
        lower, upper = surface_bounds(('elevator', 'rudder'),
                                      {'elevator': {'pos_lim': 0.2}, 'rudder': 'wide'})
        np.testing.assert_array_equal(lower, [-DEFAULT_SURFACE_LIMIT] * 2)
        np.testing.assert_array_equal(upper, [DEFAULT_SURFACE_LIMIT] * 2)

    @pytest.mark.parametrize("entry", [
        {'pos_lim': -0.3, 'neg_lim': 0.3},
        {'pos_lim': float('nan'), 'neg_lim': -0.3},
        {'PosLim': float('inf'), 'NegLim': -0.3},
    ])
    def test_invalid_range_falls_back(self, entry, caplog):
        with caplog.at_level(logging.DEBUG, logger='trim.compiler'):
            lower, upper = surface_bounds(('elevator',), {'elevator': entry})
        assert (lower[0], upper[0]) == (-DEFAULT_SURFACE_LIMIT, DEFAULT_SURFACE_LIMIT)
        assert "Malformed actuator limit for elevator" in caplog.text

    def test_fixed_surface_range_kept(self):
        lower, upper = surface_bounds(('elevator',), {'elevator': {'pos_lim': 0.0, 'neg_lim': 0.0}})
        assert (lower[0], upper[0]) == (0.0, 0.0)


class TestSeeds:

    def test_wrong_block_size(self):
        seed = get_variant('UltraStick25e').default_seeds()
        seed.states['attitude'] = np.zeros(4)
        with pytest.raises(TrimSpecificationError, match="attitude"):
            compile_for({'airspeed': 17}, seed=seed)

    def test_wrong_actuator_count(self):
        seed = get_variant('UltraStick25e').default_seeds()
        seed.actuators = np.zeros(6)
        with pytest.raises(TrimSpecificationError, match="actuator"):
            compile_for({'airspeed': 17}, seed=seed)

    def test_missing_block_uses_default(self):
        seed = get_variant('UltraStick25e').default_seeds()
        del seed.states['engine_speed']
        problem = compile_for({'airspeed': 17}, seed=seed)
        assert problem.state_block('engine_speed').spec.value[0] == 500.0

    def test_rigid_seed_rejected_for_aeroelastic(self):
        seed = get_variant('UltraStick25e').default_seeds()
        with pytest.raises(TrimSpecificationError):
            compile_for({'airspeed': 23}, variant='miniMUTT', seed=seed)


class TestImmutability:

    def test_problem_frozen(self):
        problem = compile_for({'airspeed': 17})
        with pytest.raises(dataclasses.FrozenInstanceError):
            problem.variant = 'miniMUTT'
        with pytest.raises(ValueError):
            problem.state_block('attitude').spec.known[2] = False

    def test_updated_returns_new_spec(self):
        spec = VariableSpec.create([1.0, 2.0, 3.0], known=True)
        relaxed = spec.updated(1, known=False)
        np.testing.assert_array_equal(spec.known, [True, True, True])
        np.testing.assert_array_equal(relaxed.known, [True, False, True])

    def test_builder_requires_inputs(self):
        builder = TrimProblemBuilder(get_variant('UltraStick25e'))
        with pytest.raises(TrimSpecificationError):
            builder.build()
