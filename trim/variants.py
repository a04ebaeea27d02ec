"""
Airframe Variants

Each supported airframe topology provides its state-vector partition, its
control-surface names and a default prior trim state:

    Airframe.state_blocks()       -> ordered BlockLayouts
    Airframe.control_names()      -> actuator-vector order
    Airframe.secondary_controls() -> surfaces fixed at zero unless targeted
    Airframe.default_seeds()      -> TrimBundle usable as a prior trim

Supported tags:
    UltraStick25e, UltraStick120  -> RigidAirframe (core + engine speed)
    miniMUTT                      -> AeroelasticAirframe (core + 5 blocks)

A new topology is added by implementing Airframe and registering it in
VARIANTS.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple, Union

import numpy as np

from config import MINIMUTT, ULTRASTICK120, ULTRASTICK25E, UAVConfig
from trim.errors import UnknownVariantError
from trim.problem import TrimBundle


# Target names shared by every airframe
FLIGHT_CONDITION_NAMES = (
    'airspeed', 'alpha', 'beta', 'gamma', 'phi', 'theta', 'psi',
    'phidot', 'thetadot', 'psidot', 'p', 'q', 'r', 'altitude',
)
THROTTLE_NAMES = ('motor', 'throttle')


@dataclass(frozen=True)
class BlockLayout:
    """
    Shape and topology defaults of one state block.

    known / steady_state / lower / upper are per-component defaults applied
    before any target rule.
    """
    name: str
    labels: Tuple[str, ...]
    known: Tuple[bool, ...] = ()
    steady_state: Tuple[bool, ...] = ()
    lower: Tuple[float, ...] = ()
    upper: Tuple[float, ...] = ()

    @property
    def size(self) -> int:
        return len(self.labels)

    def defaults(self) -> Dict[str, np.ndarray]:
        n = self.size
        return {
            'known': np.array(self.known or (False,) * n, dtype=bool),
            'steady_state': np.array(self.steady_state or (True,) * n, dtype=bool),
            'lower': np.array(self.lower or (-np.inf,) * n, dtype=float),
            'upper': np.array(self.upper or (np.inf,) * n, dtype=float),
        }


def _free_block(name: str, prefix: str, size: int) -> BlockLayout:
    """Block of `size` free, steady-state components."""
    return BlockLayout(name, tuple(f'{prefix}{i + 1}' for i in range(size)))


# Rigid-body blocks common to all airframes. Heading and Ze are fixed,
# position is not required to be steady, u >= 0 and Ze <= 0.
CORE_BLOCKS = (
    BlockLayout('attitude', ('phi', 'theta', 'psi'),
                known=(False, False, True)),
    BlockLayout('rates', ('p', 'q', 'r')),
    BlockLayout('velocities', ('u', 'v', 'w'),
                lower=(0.0, -np.inf, -np.inf)),
    BlockLayout('inertial', ('xe', 'ye', 'ze'),
                known=(False, False, True),
                steady_state=(False, False, False),
                upper=(np.inf, np.inf, 0.0)),
)


class Airframe(ABC):
    """Interface implemented by every airframe topology."""

    def __init__(self, tag: str, config: UAVConfig):
        self.tag = tag
        self.config = config

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.tag!r})"

    @abstractmethod
    def state_blocks(self) -> List[BlockLayout]:
        """Ordered state blocks."""

    def control_names(self) -> Tuple[str, ...]:
        return tuple(self.config.controls)

    @abstractmethod
    def secondary_controls(self) -> Tuple[str, ...]:
        """Surfaces defaulted to zero when not targeted."""

    def target_names(self) -> FrozenSet[str]:
        """Every name accepted in a trim target for this airframe."""
        return frozenset(FLIGHT_CONDITION_NAMES + THROTTLE_NAMES + self.control_names())

    def state_size(self) -> int:
        return sum(block.size for block in self.state_blocks())

    def _core_seed(self) -> Dict[str, np.ndarray]:
        V = self.config.trim_airspeed
        alpha = self.config.alpha_guess
        return {
            'attitude': np.array([0.0, alpha, 0.0]),
            'rates': np.zeros(3),
            'velocities': np.array([V * np.cos(alpha), 0.0, V * np.sin(alpha)]),
            'inertial': np.array([0.0, 0.0, -self.config.trim_altitude]),
        }

    def default_seeds(self) -> TrimBundle:
        """Level-flight guess at the airframe's nominal airspeed."""
        states = self._core_seed()
        for block in self.state_blocks():
            states.setdefault(block.name, np.zeros(block.size))
        V = self.config.trim_airspeed
        return TrimBundle(
            states=states,
            motor=0.5,
            actuators=np.zeros(len(self.control_names())),
            wind_axes=np.array([V, self.config.alpha_guess, 0.0]),
            variant=self.tag,
        )


class RigidAirframe(Airframe):
    """Rigid airframe with a motor speed state (UltraStick family)."""

    def state_blocks(self) -> List[BlockLayout]:
        return list(CORE_BLOCKS) + [BlockLayout('engine_speed', ('omega',))]

    def secondary_controls(self) -> Tuple[str, ...]:
        return ('l_flap', 'r_flap')

    def _core_seed(self) -> Dict[str, np.ndarray]:
        states = super()._core_seed()
        states['engine_speed'] = np.array([0.5 * self.config.engine.omega_max])
        return states


class AeroelasticAirframe(Airframe):
    """Flexible flying wing with structural, lag and filter states (miniMUTT)."""

    def state_blocks(self) -> List[BlockLayout]:
        flex = self.config.aeroelastic
        n_modes = flex.n_modes
        return list(CORE_BLOCKS) + [
            _free_block('dt1_accel', 'acc', n_modes),
            _free_block('dt1_ctrl_surf', 'surf', len(self.control_names())),
            _free_block('lag', 'lag', flex.n_lag),
            _free_block('flex', 'eta', n_modes),
            _free_block('flex_rates', 'eta_dot', n_modes),
        ]

    def secondary_controls(self) -> Tuple[str, ...]:
        return ('L1', 'L4', 'R1', 'R4')


VARIANTS: Dict[str, Airframe] = {
    'ultrastick25e': RigidAirframe('UltraStick25e', ULTRASTICK25E),
    'ultrastick120': RigidAirframe('UltraStick120', ULTRASTICK120),
    'minimutt': AeroelasticAirframe('miniMUTT', MINIMUTT),
}


def available_variants() -> List[str]:
    return [variant.tag for variant in VARIANTS.values()]


def get_variant(tag: Union[str, Airframe]) -> Airframe:
    """
    Look up an airframe by tag (case-insensitive).

    Raises:
        UnknownVariantError: tag is not a supported airframe
    """
    if isinstance(tag, Airframe):
        return tag
    try:
        return VARIANTS[str(tag).lower()]
    except KeyError:
        raise UnknownVariantError(tag, available_variants()) from None


def block_sizes(variant: Airframe) -> Dict[str, int]:
    return {block.name: block.size for block in variant.state_blocks()}
