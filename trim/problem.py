"""
Trim Problem Data Model

Containers passed between the trim stages:

    VariableSpec  - value, known/steady-state flags and bounds of one scalar
                    or vector quantity (state block, output or input)
    StateBlock    - named group of state components (attitude, rates, ...)
    OutputSpec    - one entry of the output catalogue
    InputSpec     - throttle plus the control-surface vector
    TrimProblem   - everything the equilibrium solver needs
    TrimSolution  - solved values and solver diagnostics
    TrimBundle    - named initial-condition bundle (prior trim / result)
    Evaluation    - what a derivative/output evaluator returns

VariableSpec, StateBlock, OutputSpec, InputSpec, TrimProblem and
TrimSolution are frozen and hold read-only arrays.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np


class Output(str, Enum):
    """Output catalogue in solver order."""
    AIRSPEED = 'airspeed'
    BETA = 'beta'
    ALPHA = 'alpha'
    ALTITUDE = 'altitude'
    PHI = 'phi'
    THETA = 'theta'
    PSI = 'psi'
    P = 'p'
    Q = 'q'
    R = 'r'
    GAMMA = 'gamma'
    AX = 'ax'
    AY = 'ay'
    AZ = 'az'
    EULER_RATES = 'euler_rates'

    @property
    def size(self) -> int:
        return 3 if self is Output.EULER_RATES else 1


# 1-based output port numbers used by legacy trim records
OUTPUT_PORT_INDEX = {
    Output.AIRSPEED: 1,
    Output.BETA: 2,
    Output.ALPHA: 3,
    Output.ALTITUDE: 4,
    Output.PHI: 5,
    Output.THETA: 6,
    Output.PSI: 7,
    Output.P: 8,
    Output.Q: 9,
    Output.R: 10,
    Output.GAMMA: 11,
    Output.AX: 12,
    Output.AY: 13,
    Output.AZ: 14,
    Output.EULER_RATES: 15,
}

# Wind-axes bundle is stored airspeed, alpha, beta (not catalogue order)
WIND_AXES_ORDER = (Output.AIRSPEED, Output.ALPHA, Output.BETA)
ACCEL_ORDER = (Output.AX, Output.AY, Output.AZ)


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _vector(value, size: int, dtype) -> np.ndarray:
    arr = np.asarray(value, dtype=dtype)
    if arr.ndim == 0:
        arr = np.full(size, arr, dtype=dtype)
    return _readonly(arr.reshape(-1).copy())


@dataclass(frozen=True, eq=False)
class VariableSpec:
    """
    Specification of one scalar or vector quantity.

    known:         component is held fixed at `value`
    steady_state:  component's time derivative is driven to zero
    lower/upper:   box bounds applied to free components
    """
    value: np.ndarray
    known: np.ndarray
    steady_state: np.ndarray
    lower: np.ndarray
    upper: np.ndarray

    @classmethod
    def create(cls, value, known=False, steady_state=False,
               lower=-np.inf, upper=np.inf) -> 'VariableSpec':
        value = np.atleast_1d(np.asarray(value, dtype=float)).reshape(-1)
        n = value.size
        return cls(
            value=_readonly(value.copy()),
            known=_vector(known, n, bool),
            steady_state=_vector(steady_state, n, bool),
            lower=_vector(lower, n, float),
            upper=_vector(upper, n, float),
        )

    @property
    def size(self) -> int:
        return self.value.size

    def updated(self, index=None, **changes) -> 'VariableSpec':
        """
        Copy with some fields changed, either whole or at `index`.

        Example:
            spec.updated(2, known=False)          # third component free
            spec.updated(value=[1.0, 2.0, 3.0])   # whole vector
        """
        fields = {
            name: getattr(self, name).copy()
            for name in ('value', 'known', 'steady_state', 'lower', 'upper')
        }
        for name, new in changes.items():
            if name not in fields:
                raise TypeError(f"VariableSpec has no field '{name}'")
            if index is None:
                fields[name] = np.broadcast_to(
                    np.asarray(new, dtype=fields[name].dtype), fields[name].shape
                ).copy()
            else:
                fields[name][index] = new
        return VariableSpec.create(**fields)

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {
            'value': self.value,
            'known': self.known,
            'steady_state': self.steady_state,
            'lower': self.lower,
            'upper': self.upper,
        }


@dataclass(frozen=True, eq=False)
class StateBlock:
    """Named group of state components for one subsystem."""
    name: str
    labels: Tuple[str, ...]
    spec: VariableSpec

    @property
    def size(self) -> int:
        return self.spec.size

    def index(self, label: str) -> int:
        try:
            return self.labels.index(label)
        except ValueError:
            raise KeyError(f"Block '{self.name}' has no component '{label}'") from None


@dataclass(frozen=True, eq=False)
class OutputSpec:
    """One output of the catalogue; inactive outputs are ignored by the solver."""
    output: Output
    spec: VariableSpec
    active: bool = True

    @property
    def name(self) -> str:
        return self.output.value


@dataclass(frozen=True, eq=False)
class InputSpec:
    """Throttle plus the ordered control-surface vector."""
    motor: VariableSpec
    actuators: VariableSpec
    names: Tuple[str, ...]

    def vector(self) -> np.ndarray:
        return np.concatenate([self.motor.value, self.actuators.value])


@dataclass(frozen=True, eq=False)
class TrimProblem:
    """Fully compiled trim specification for one request."""
    variant: str
    states: Tuple[StateBlock, ...]
    outputs: Tuple[OutputSpec, ...]
    inputs: InputSpec

    def state_block(self, name: str) -> StateBlock:
        for block in self.states:
            if block.name == name:
                return block
        raise KeyError(f"No state block '{name}' in {self.variant} problem")

    def output(self, output) -> OutputSpec:
        output = Output(output)
        for spec in self.outputs:
            if spec.output is output:
                return spec
        raise KeyError(output)

    @property
    def state_size(self) -> int:
        return sum(block.size for block in self.states)

    def state_field(self, name: str) -> np.ndarray:
        """Concatenate one VariableSpec field over all state blocks."""
        return np.concatenate([getattr(block.spec, name) for block in self.states])

    def input_field(self, name: str) -> np.ndarray:
        return np.concatenate([
            getattr(self.inputs.motor, name),
            getattr(self.inputs.actuators, name),
        ])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'variant': self.variant,
            'states': {block.name: dict(block.spec.to_dict(), labels=list(block.labels))
                       for block in self.states},
            'outputs': {spec.name: dict(spec.spec.to_dict(), active=spec.active,
                                        index=OUTPUT_PORT_INDEX[spec.output])
                        for spec in self.outputs},
            'inputs': {
                'motor': self.inputs.motor.to_dict(),
                'actuators': dict(self.inputs.actuators.to_dict(),
                                  names=list(self.inputs.names)),
            },
        }


@dataclass(frozen=True, eq=False)
class TrimSolution:
    """Solved values and solver diagnostics. Immutable once produced."""
    states: Mapping[str, np.ndarray]
    outputs: Mapping[str, np.ndarray]
    motor: float
    actuators: np.ndarray
    converged: bool
    iterations: int
    n_evaluations: int
    residual_norm: float
    message: str = ''
    method: str = ''

    def __post_init__(self):
        states = {k: _readonly(np.array(v, dtype=float)) for k, v in self.states.items()}
        outputs = {k: _readonly(np.atleast_1d(np.array(v, dtype=float)))
                   for k, v in self.outputs.items()}
        object.__setattr__(self, 'states', MappingProxyType(states))
        object.__setattr__(self, 'outputs', MappingProxyType(outputs))
        object.__setattr__(self, 'actuators',
                           _readonly(np.array(self.actuators, dtype=float)))

    def output_value(self, output) -> float:
        """Scalar output value (first component for vector outputs)."""
        return float(self.outputs[Output(output).value][0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'states': dict(self.states),
            'outputs': dict(self.outputs),
            'motor': self.motor,
            'actuators': self.actuators,
            'converged': self.converged,
            'iterations': self.iterations,
            'n_evaluations': self.n_evaluations,
            'residual_norm': self.residual_norm,
            'message': self.message,
            'method': self.method,
        }


@dataclass
class TrimBundle:
    """
    Named initial-condition bundle.

    Used both as the prior trim state that seeds a trim request and as the
    materialised result of one, so results can seed a simulation or the
    next trim call.
    """
    states: Dict[str, np.ndarray]
    motor: float = 0.0
    actuators: np.ndarray = field(default_factory=lambda: np.zeros(0))
    accels: np.ndarray = field(default_factory=lambda: np.zeros(3))
    wind_axes: np.ndarray = field(default_factory=lambda: np.zeros(3))
    target: Dict[str, Any] = field(default_factory=dict)
    variant: Optional[str] = None
    problem: Optional[TrimProblem] = None
    solution: Optional[TrimSolution] = None

    def with_target(self, **target) -> 'TrimBundle':
        """Copy of this bundle with a new trim target."""
        return replace(self, target=dict(target))

    @property
    def converged(self) -> Optional[bool]:
        return None if self.solution is None else self.solution.converged


@dataclass
class Evaluation:
    """
    Result of one derivative/output evaluation.

    x_dot:    state derivative in the problem's block order
    outputs:  output name -> value (scalar or array)
    """
    x_dot: np.ndarray
    outputs: Dict[str, Any]
