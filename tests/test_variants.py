"""
Airframe variants: enumeration, lookup, block layouts and default seeds.
"""

import numpy as np
import pytest

from trim.errors import UnknownVariantError
from trim.variants import (
    AeroelasticAirframe,
    RigidAirframe,
    available_variants,
    block_sizes,
    get_variant,
)


class TestLookup:

    def test_available_variants(self):
        assert set(available_variants()) == {'UltraStick25e', 'UltraStick120', 'miniMUTT'}

    @pytest.mark.parametrize("tag", ['ultrastick25e', 'ULTRASTICK25E', 'UltraStick25e'])
    def test_case_insensitive(self, tag):
        assert get_variant(tag).tag == 'UltraStick25e'

    def test_unknown_tag(self):
        with pytest.raises(UnknownVariantError) as excinfo:
            get_variant('Cessna172')
        assert excinfo.value.tag == 'Cessna172'
        assert 'miniMUTT' in excinfo.value.available

    def test_airframe_passthrough(self):
        airframe = get_variant('miniMUTT')
        assert get_variant(airframe) is airframe

    def test_topologies(self):
        assert isinstance(get_variant('UltraStick25e'), RigidAirframe)
        assert isinstance(get_variant('UltraStick120'), RigidAirframe)
        assert isinstance(get_variant('miniMUTT'), AeroelasticAirframe)


class TestBlockLayout:

    def test_rigid_blocks(self):
        sizes = block_sizes(get_variant('UltraStick25e'))
        assert list(sizes) == ['attitude', 'rates', 'velocities', 'inertial', 'engine_speed']
        assert sizes == {'attitude': 3, 'rates': 3, 'velocities': 3,
                         'inertial': 3, 'engine_speed': 1}

    def test_aeroelastic_blocks(self):
        sizes = block_sizes(get_variant('miniMUTT'))
        assert list(sizes) == ['attitude', 'rates', 'velocities', 'inertial',
                               'dt1_accel', 'dt1_ctrl_surf', 'lag', 'flex', 'flex_rates']
        assert sizes['dt1_accel'] == 2
        assert sizes['dt1_ctrl_surf'] == 6
        assert sizes['lag'] == 2
        assert sizes['flex'] == 2
        assert sizes['flex_rates'] == 2

    def test_state_size_matches_models(self, us25_model, minimutt_model):
        assert get_variant('UltraStick25e').state_size() == us25_model.state_size
        assert get_variant('miniMUTT').state_size() == minimutt_model.state_size

    def test_control_names(self):
        assert get_variant('UltraStick25e').control_names() == (
            'elevator', 'rudder', 'aileron', 'l_flap', 'r_flap')
        assert get_variant('miniMUTT').control_names() == (
            'elevator', 'aileron', 'L1', 'L4', 'R1', 'R4')

    def test_topology_defaults(self):
        attitude, _, velocities, inertial = get_variant('UltraStick25e').state_blocks()[:4]
        defaults = attitude.defaults()
        np.testing.assert_array_equal(defaults['known'], [False, False, True])
        np.testing.assert_array_equal(defaults['steady_state'], [True, True, True])

        assert velocities.defaults()['lower'][0] == 0.0
        inertial_defaults = inertial.defaults()
        np.testing.assert_array_equal(inertial_defaults['steady_state'], [False, False, False])
        assert inertial_defaults['upper'][2] == 0.0


class TestDefaultSeeds:

    @pytest.mark.parametrize("tag", ['UltraStick25e', 'UltraStick120', 'miniMUTT'])
    def test_seed_matches_layout(self, tag):
        airframe = get_variant(tag)
        seed = airframe.default_seeds()
        for block in airframe.state_blocks():
            assert seed.states[block.name].shape == (block.size,)
        assert seed.actuators.shape == (len(airframe.control_names()),)
        assert seed.variant == airframe.tag

    def test_level_flight_guess(self):
        seed = get_variant('UltraStick25e').default_seeds()
        V = np.linalg.norm(seed.states['velocities'])
        assert V == pytest.approx(17.0)
        assert seed.states['inertial'][2] < 0.0
        assert 0.0 <= seed.motor <= 1.0

    def test_seeds_are_independent_copies(self):
        airframe = get_variant('UltraStick25e')
        first = airframe.default_seeds()
        first.states['rates'][0] = 1.0
        assert airframe.default_seeds().states['rates'][0] == 0.0
