"""
Trim Constraint Compiler

Translates a normalized trim target into a TrimProblem: known/free flags,
steady-state flags, values and bounds for every state block, output and
input.

Beware of over-constraining the states: the solver often fails (even at a
trim point) when the problem is over-constrained. Each targeted output is
therefore paired with the state relaxations below, which keep the
combinations used for this airframe family well posed.

    target     output marked known     relaxation
    ---------  ----------------------  ---------------------------------
    airspeed   airspeed                -
    beta       beta                    if != 0: phi free
    alpha      alpha                   -
    altitude   altitude                Ze free
    phi        phi                     phi free; psi not steady
    theta      theta                   -
    psi        psi                     -
    p          p                       phi not steady
    q          q                       theta not steady
    r          r                       psi not steady
    gamma      gamma                   -
    phidot     euler_rates[0]          if != 0: phi not steady
    thetadot   euler_rates[1]          if != 0: theta not steady
    psidot     euler_rates[2]          if != 0: psi not steady
"""

import logging
from collections import namedtuple
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from config import DEFAULT_SURFACE_LIMIT
from trim.errors import TrimSpecificationError
from trim.problem import (
    InputSpec,
    Output,
    OutputSpec,
    StateBlock,
    TrimBundle,
    TrimProblem,
    VariableSpec,
)
from trim.variants import Airframe, BlockLayout, get_variant

logger = logging.getLogger(__name__)


# flag is 'known' or 'steady_state'; nonzero_only applies the relaxation
# only when the target value is non-zero
Relaxation = namedtuple('Relaxation', 'block label flag nonzero_only')

TARGET_RULES: Dict[str, Tuple[Output, Tuple[Relaxation, ...]]] = {
    'airspeed': (Output.AIRSPEED, ()),
    'beta': (Output.BETA, (Relaxation('attitude', 'phi', 'known', True),)),
    'alpha': (Output.ALPHA, ()),
    'altitude': (Output.ALTITUDE, (Relaxation('inertial', 'ze', 'known', False),)),
    'phi': (Output.PHI, (Relaxation('attitude', 'phi', 'known', False),
                         Relaxation('attitude', 'psi', 'steady_state', False))),
    'theta': (Output.THETA, ()),
    'psi': (Output.PSI, ()),
    'p': (Output.P, (Relaxation('attitude', 'phi', 'steady_state', False),)),
    'q': (Output.Q, (Relaxation('attitude', 'theta', 'steady_state', False),)),
    'r': (Output.R, (Relaxation('attitude', 'psi', 'steady_state', False),)),
    'gamma': (Output.GAMMA, ()),
}

# Euler-rate targets share one vector output
EULER_RATE_RULES: Dict[str, Tuple[int, Relaxation]] = {
    'phidot': (0, Relaxation('attitude', 'phi', 'steady_state', True)),
    'thetadot': (1, Relaxation('attitude', 'theta', 'steady_state', True)),
    'psidot': (2, Relaxation('attitude', 'psi', 'steady_state', True)),
}

MOTOR_BOUNDS = (0.0, 1.0)


def surface_bounds(
    names: Tuple[str, ...],
    actuator_limits: Optional[Mapping[str, Any]] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Lower/upper deflection bounds per surface.

    Limits come from the actuator limit table ({surface: {pos_lim, neg_lim}},
    PosLim/NegLim also accepted). A missing or malformed entry, including an
    inverted or non-finite range, falls back to ±DEFAULT_SURFACE_LIMIT.
    """
    lower = np.full(len(names), -DEFAULT_SURFACE_LIMIT)
    upper = np.full(len(names), DEFAULT_SURFACE_LIMIT)
    limits = actuator_limits or {}

    for i, name in enumerate(names):
        entry = limits.get(name)
        if entry is None:
            logger.debug("No actuator limit for %s, using ±%.4f rad", name, DEFAULT_SURFACE_LIMIT)
            continue
        try:
            pos = entry['pos_lim'] if 'pos_lim' in entry else entry['PosLim']
            neg = entry['neg_lim'] if 'neg_lim' in entry else entry['NegLim']
            pos, neg = float(pos), float(neg)
            if not (np.isfinite(pos) and np.isfinite(neg)) or neg > pos:
                raise ValueError(f"invalid range [{neg}, {pos}]")
            upper[i], lower[i] = pos, neg
        except (KeyError, TypeError, ValueError):
            logger.debug("Malformed actuator limit for %s: %r, using default", name, entry)
            lower[i], upper[i] = -DEFAULT_SURFACE_LIMIT, DEFAULT_SURFACE_LIMIT

    return lower, upper


class TrimProblemBuilder:
    """
    Accumulates frozen VariableSpecs and returns a fully built TrimProblem.

    Every mutator replaces a spec with an updated copy, so specs handed out
    earlier are never changed.
    """

    def __init__(self, variant: Airframe):
        self.variant = variant
        self._labels: Dict[str, Tuple[str, ...]] = {}
        self._states: Dict[str, VariableSpec] = {}
        self._outputs: Dict[Output, VariableSpec] = {
            output: VariableSpec.create(np.zeros(output.size))
            for output in Output
        }
        self._active = {output: output is not Output.EULER_RATES for output in Output}
        self._motor: Optional[VariableSpec] = None
        self._actuators: Optional[VariableSpec] = None

    def add_state_block(self, layout: BlockLayout, seed: np.ndarray) -> 'TrimProblemBuilder':
        seed = np.asarray(seed, dtype=float).reshape(-1)
        if seed.size != layout.size:
            raise TrimSpecificationError(
                f"Prior trim block '{layout.name}' has {seed.size} values, "
                f"{self.variant.tag} expects {layout.size}"
            )
        self._labels[layout.name] = layout.labels
        self._states[layout.name] = VariableSpec.create(seed, **layout.defaults())
        return self

    def relax(self, relaxation: Relaxation) -> 'TrimProblemBuilder':
        index = self._labels[relaxation.block].index(relaxation.label)
        spec = self._states[relaxation.block]
        self._states[relaxation.block] = spec.updated(index, **{relaxation.flag: False})
        logger.debug("Relaxed %s.%s %s", relaxation.block, relaxation.label, relaxation.flag)
        return self

    def constrain_output(self, output: Output, value: float,
                         component: Optional[int] = None) -> 'TrimProblemBuilder':
        spec = self._outputs[output]
        index = 0 if component is None else component
        self._outputs[output] = spec.updated(index, value=value, known=True)
        self._active[output] = True
        return self

    def activate_output(self, output: Output) -> 'TrimProblemBuilder':
        self._active[output] = True
        return self

    def set_motor(self, spec: VariableSpec) -> 'TrimProblemBuilder':
        self._motor = spec
        return self

    def set_actuators(self, spec: VariableSpec) -> 'TrimProblemBuilder':
        self._actuators = spec
        return self

    def build(self) -> TrimProblem:
        if self._motor is None or self._actuators is None:
            raise TrimSpecificationError("Trim problem inputs have not been set")
        states = tuple(
            StateBlock(name=name, labels=self._labels[name], spec=spec)
            for name, spec in self._states.items()
        )
        outputs = tuple(
            OutputSpec(output=output, spec=spec, active=self._active[output])
            for output, spec in self._outputs.items()
        )
        inputs = InputSpec(
            motor=self._motor,
            actuators=self._actuators,
            names=self.variant.control_names(),
        )
        return TrimProblem(
            variant=self.variant.tag, states=states, outputs=outputs, inputs=inputs
        )


def _apply(builder: TrimProblemBuilder, relaxations, value: float) -> None:
    for relaxation in relaxations:
        if relaxation.nonzero_only and value == 0:
            continue
        builder.relax(relaxation)


def compile_trim_problem(
    target: Mapping[str, float],
    variant: Union[str, Airframe],
    seed: Optional[TrimBundle] = None,
    actuator_limits: Optional[Mapping[str, Any]] = None
) -> TrimProblem:
    """
    Build the TrimProblem for a normalized target.

    Args:
        target: Output of normalize_target()
        variant: Airframe or airframe tag
        seed: Prior trim bundle supplying initial values; blocks it lacks
              come from the airframe's default seeds
        actuator_limits: Optional {surface: {pos_lim, neg_lim}} table

    Returns:
        TrimProblem

    Raises:
        TrimSpecificationError: seed arrays do not match the airframe layout
    """
    airframe = get_variant(variant)
    defaults = airframe.default_seeds()
    seed = seed or defaults
    builder = TrimProblemBuilder(airframe)

    # States
    for layout in airframe.state_blocks():
        value = seed.states.get(layout.name)
        if value is None:
            logger.debug("Prior trim lacks '%s', using default seed", layout.name)
            value = defaults.states[layout.name]
        builder.add_state_block(layout, value)

    # Outputs and relaxations
    for name, (output, relaxations) in TARGET_RULES.items():
        if name in target:
            builder.constrain_output(output, target[name])
            _apply(builder, relaxations, target[name])

    euler_targets = [name for name in EULER_RATE_RULES if name in target]
    if euler_targets:
        builder.activate_output(Output.EULER_RATES)
    for name in euler_targets:
        component, relaxation = EULER_RATE_RULES[name]
        builder.constrain_output(Output.EULER_RATES, target[name], component)
        _apply(builder, (relaxation,), target[name])

    # Inputs
    if 'motor' in target:
        motor = VariableSpec.create(target['motor'], known=True,
                                    lower=MOTOR_BOUNDS[0], upper=MOTOR_BOUNDS[1])
    else:
        motor = VariableSpec.create(seed.motor, known=False,
                                    lower=MOTOR_BOUNDS[0], upper=MOTOR_BOUNDS[1])
    builder.set_motor(motor)

    names = airframe.control_names()
    values = np.asarray(seed.actuators, dtype=float).reshape(-1)
    if values.size != len(names):
        raise TrimSpecificationError(
            f"Prior trim has {values.size} actuator values, "
            f"{airframe.tag} expects {len(names)} ({', '.join(names)})"
        )
    known = np.array([name in target for name in names])
    values = np.array([target.get(name, v) for name, v in zip(names, values)], dtype=float)
    lower, upper = surface_bounds(names, actuator_limits)
    builder.set_actuators(VariableSpec.create(values, known=known, lower=lower, upper=upper))

    problem = builder.build()
    logger.debug("Compiled %s trim problem for target %s", airframe.tag, sorted(target))
    return problem


def count_constraints(problem: TrimProblem) -> Dict[str, int]:
    """
    Free variables and active equality constraints of a compiled problem.

    Informational only; the rule tables keep the two balanced for the
    supported airframes.
    """
    n_free = int(np.sum(~problem.state_field('known')) + np.sum(~problem.input_field('known')))
    n_steady = int(np.sum(problem.state_field('steady_state')))
    n_outputs = int(sum(np.sum(spec.spec.known) for spec in problem.outputs if spec.active))
    return {'free': n_free, 'steady_state': n_steady, 'outputs': n_outputs,
            'equations': n_steady + n_outputs}
