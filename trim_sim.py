"""
Trim Simulation Entry Point

Runs one trim request end to end:

    normalize target -> compile problem -> acquire model -> solve
    -> materialize -> (print) -> (save)

Example:
    >>> from trim_sim import trim_sim
    >>> from config_loader import load_trim_seed, load_actuator_limits
    >>> seed = load_trim_seed('UltraStick25e')
    >>> trim = trim_sim('UltraStick25e', seed,
    ...                 target={'airspeed': 17, 'gamma': 0, 'psidot': np.radians(20)},
    ...                 actuator_limits=load_actuator_limits('UltraStick25e'))
    >>> np.degrees(trim.states['attitude'][0])   # bank angle
    31.6...

The returned bundle can seed the next request:

    >>> climb = trim_sim('UltraStick25e', trim, target={'airspeed': 17, 'gamma': 0.05})
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import numpy as np

from config import MINIMUTT, ULTRASTICK120, ULTRASTICK25E, SolverSettings
from eom.aeroelastic import AeroelasticModel
from eom.six_dof import RigidBodyModel
from trim.compiler import compile_trim_problem
from trim.materialize import materialize
from trim.model_handle import ModelRegistry, acquire_model
from trim.persistence import save_trim
from trim.problem import TrimBundle
from trim.solver import solve_trim
from trim.target import normalize_target
from trim.variants import get_variant

logger = logging.getLogger(__name__)


# Reference evaluator factories, keyed by model name
MODEL_FACTORIES: Dict[str, Callable[[], Any]] = {
    'UltraStick25e': lambda: RigidBodyModel(ULTRASTICK25E),
    'UltraStick120': lambda: RigidBodyModel(ULTRASTICK120),
    'miniMUTT': lambda: AeroelasticModel(MINIMUTT),
}

_DEFAULT_REGISTRY: Optional[ModelRegistry] = None


def default_registry() -> ModelRegistry:
    """Process-wide registry holding the reference models."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = ModelRegistry(MODEL_FACTORIES)
    return _DEFAULT_REGISTRY


def trim_sim(
    model_name: str,
    trim: Optional[TrimBundle],
    target: Optional[Mapping[str, Any]] = None,
    sim_type: Optional[str] = None,
    actuator_limits: Optional[Mapping[str, Any]] = None,
    settings: Optional[SolverSettings] = None,
    file_save: Optional[Union[str, Path]] = None,
    verbose: bool = True,
    strict: bool = False,
    registry: Optional[ModelRegistry] = None
) -> TrimBundle:
    """
    Trim a model to a target flight condition.

    Args:
        model_name: Name of the evaluator model in the registry
        trim: Prior trim bundle (initial values); None uses the airframe's
              default seeds
        target: Trim target; defaults to trim.target
        sim_type: Airframe variant tag; defaults to model_name
        actuator_limits: {surface: {pos_lim, neg_lim}} table
        settings: SolverSettings (defaults if None)
        file_save: Save the result to this .mat file
        verbose: Print the trim summary and save confirmation
        strict: Raise TrimNotConvergedError instead of returning a
                non-converged result
        registry: Model registry (defaults to the reference models)

    Returns:
        TrimBundle with states, inputs, accels, wind axes, the normalized
        target, problem and solution

    Raises:
        TrimSpecificationError: invalid target or prior trim
        ModelLoadError: model could not be loaded
        TrimNotConvergedError: strict and the solver did not converge
    """
    variant = get_variant(sim_type or model_name)
    registry = registry or default_registry()
    if target is None:
        target = trim.target if trim is not None else {}

    normalized = normalize_target(target, variant)
    problem = compile_trim_problem(normalized, variant, trim, actuator_limits)

    if settings is None:
        settings = SolverSettings()

    with acquire_model(registry, model_name) as model:
        solution = solve_trim(problem, model, settings)

    bundle = materialize(problem, solution, normalized, variant, strict=strict)

    if verbose:
        print(print_trim_summary(bundle))

    if file_save:
        save_trim(file_save, bundle, verbose=verbose)

    return bundle


def print_trim_summary(bundle: TrimBundle) -> str:
    """Format a trim result as a table."""
    solution = bundle.solution
    attitude = bundle.states['attitude']
    rates = bundle.states['rates']
    V, alpha, beta = bundle.wind_axes
    names = bundle.problem.inputs.names if bundle.problem is not None else ()

    lines = [
        "=" * 50,
        f"TRIM SOLUTION: {bundle.variant}",
        "=" * 50,
    ]
    if solution is not None:
        lines += [
            f"  Converged: {'Yes' if solution.converged else 'No'} ({solution.method})",
            f"  Residual: {solution.residual_norm:.2e}",
            f"  Iterations: {solution.iterations}, evaluations: {solution.n_evaluations}",
        ]
    lines += [
        "",
        f"  V = {V:.2f} m/s",
        f"  α = {np.degrees(alpha):.2f}°, β = {np.degrees(beta):.2f}°",
        f"  φ = {np.degrees(attitude[0]):.2f}°, θ = {np.degrees(attitude[1]):.2f}°, "
        f"ψ = {np.degrees(attitude[2]):.2f}°",
        f"  p = {np.degrees(rates[0]):.2f}, q = {np.degrees(rates[1]):.2f}, "
        f"r = {np.degrees(rates[2]):.2f} deg/s",
        f"  Altitude = {-bundle.states['inertial'][2]:.1f} m",
        "",
        f"  Motor = {bundle.motor:.3f}",
    ]
    for name, value in zip(names, bundle.actuators):
        lines.append(f"  {name} = {np.degrees(value):.2f}°")
    lines += [
        "",
        f"  Accels (ax, ay, az) = ({bundle.accels[0]:.3f}, {bundle.accels[1]:.3f}, "
        f"{bundle.accels[2]:.3f}) m/s²",
        "=" * 50,
    ]
    return "\n".join(lines)


if __name__ == "__main__":
    from config_loader import load_actuator_limits, load_trim_seed

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    targets = {
        'Straight and level': {'airspeed': 17, 'gamma': 0},
        'Climb (3 deg)': {'airspeed': 17, 'gamma': np.radians(3)},
        'Level turn (20 deg/s)': {'airspeed': 17, 'gamma': 0, 'psidot': np.radians(20)},
    }
    seed = load_trim_seed('UltraStick25e')
    limits = load_actuator_limits('UltraStick25e')
    for label, target in targets.items():
        print(f"\n{label}")
        trim_sim('UltraStick25e', seed, target=target, actuator_limits=limits)
