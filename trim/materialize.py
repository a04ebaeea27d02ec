"""
Result Materializer

Turns a TrimSolution into a TrimBundle laid out like the airframe's prior
trim state, so the result can seed a simulation or the next trim call.
"""

import logging
from typing import Any, Mapping, Union

import numpy as np

from trim.errors import TrimNotConvergedError
from trim.problem import ACCEL_ORDER, WIND_AXES_ORDER, TrimBundle, TrimProblem, TrimSolution
from trim.variants import Airframe, get_variant

logger = logging.getLogger(__name__)


def materialize(
    problem: TrimProblem,
    solution: TrimSolution,
    target: Mapping[str, Any],
    variant: Union[str, Airframe],
    strict: bool = False
) -> TrimBundle:
    """
    Build the result bundle.

    Args:
        problem: Problem that was solved
        solution: Solver result
        target: Normalized target, echoed into the bundle
        variant: Airframe or airframe tag
        strict: Raise instead of returning a non-converged result

    Returns:
        TrimBundle

    Raises:
        TrimNotConvergedError: strict and the solution did not converge
    """
    if strict and not solution.converged:
        raise TrimNotConvergedError(solution)

    airframe = get_variant(variant)
    states = {
        block.name: np.array(solution.states[block.name], dtype=float)
        for block in airframe.state_blocks()
    }

    accels = np.array([solution.output_value(name) for name in ACCEL_ORDER])
    wind_axes = np.array([solution.output_value(name) for name in WIND_AXES_ORDER])

    bundle = TrimBundle(
        states=states,
        motor=solution.motor,
        actuators=np.array(solution.actuators, dtype=float),
        accels=accels,
        wind_axes=wind_axes,
        target=dict(target),
        variant=airframe.tag,
        problem=problem,
        solution=solution,
    )
    logger.debug("Materialized %s trim (converged=%s)", airframe.tag, solution.converged)
    return bundle
