"""
Trim Target Normalization

A trim target maps constraint names to optional values. Each name is in one
of three states:

    UNSET    - name absent; defaults may apply
    FREE     - name present with an empty value (None, [], (), empty array);
               forces the quantity free, overriding any default
    VALUED   - name present with a scalar value

normalize_target() validates a raw target for an airframe and returns a
plain {name: float} dict containing only the valued constraints:

    1. reject contradictory combinations (before any defaulting)
    2. default secondary controls (flaps / flutter-suppression surfaces) to 0
    3. reject unknown names, all reported together
    4. default beta and gamma to 0
    5. drop explicitly free names

Examples:
    {'airspeed': 17, 'gamma': 0}                       straight and level
    {'airspeed': 17, 'gamma': 5/180*pi}                steady climb
    {'airspeed': 17, 'gamma': 0, 'psidot': 20/180*pi}  level turn
    {'airspeed': 17, 'gamma': 0, 'beta': 5/180*pi}     steady-heading sideslip
    {'airspeed': 17, 'beta': None}                     sideslip left free
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Union

import numpy as np

from trim.errors import TrimSpecificationError, UnknownTargetFieldError
from trim.variants import Airframe, get_variant

logger = logging.getLogger(__name__)


class TargetState(Enum):
    UNSET = 'unset'
    FREE = 'free'
    VALUED = 'valued'


# Known-contradictory combinations: all names present (valued or free) -> no
# free variable left to close the pitch attitude.
OVERCONSTRAINED_SETS = (
    ('alpha', 'theta', 'gamma'),
    ('alpha', 'airspeed', 'gamma'),
)

DEFAULTS = {'beta': 0.0, 'gamma': 0.0}


def is_empty(value: Any) -> bool:
    """True for the values that mark a name as explicitly free."""
    if value is None:
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    if isinstance(value, np.ndarray) and value.size == 0:
        return True
    return False


def target_state(target: Mapping[str, Any], name: str) -> TargetState:
    if name not in target:
        return TargetState.UNSET
    if is_empty(target[name]):
        return TargetState.FREE
    return TargetState.VALUED


def _present(target: Mapping[str, Any], name: str) -> bool:
    return target_state(target, name) is not TargetState.UNSET


def _as_float(name: str, value: Any) -> float:
    try:
        arr = np.asarray(value, dtype=float)
    except (TypeError, ValueError):
        arr = None
    if arr is None or arr.size != 1:
        raise TrimSpecificationError(
            f"Trim target '{name}' must be a scalar or empty, got {value!r}"
        )
    return float(arr.reshape(-1)[0])


def check_contradictions(target: Mapping[str, Any]) -> None:
    """
    Reject target combinations known to over-constrain the trim.

    Raises:
        TrimSpecificationError: naming the conflicting fields
    """
    for names in OVERCONSTRAINED_SETS:
        if all(_present(target, name) for name in names):
            raise TrimSpecificationError(
                "Lacking free variable, cannot specify target in "
                f"{', '.join(names[:-1])} and {names[-1]}"
            )

    if _present(target, 'aileron') and (
            _present(target, 'l_aileron') or _present(target, 'r_aileron')):
        raise TrimSpecificationError(
            "Cannot specify a target for l/r_aileron AND combined aileron input"
        )

    if _present(target, 'motor') and _present(target, 'throttle'):
        raise TrimSpecificationError(
            "Cannot specify both 'motor' and 'throttle'; they name the same input"
        )


def normalize_target(
    target: Mapping[str, Any],
    variant: Union[str, Airframe]
) -> Dict[str, float]:
    """
    Validate and default-fill a raw trim target.

    Args:
        target: Raw target mapping (may be None for "no constraints")
        variant: Airframe or airframe tag

    Returns:
        Normalized target: valued constraints only, as floats

    Raises:
        TrimSpecificationError: contradictory combination or bad value
        UnknownTargetFieldError: unrecognised names (all listed)
        UnknownVariantError: unrecognised airframe tag
    """
    airframe = get_variant(variant)
    raw = dict(target or {})

    check_contradictions(raw)

    for name in airframe.secondary_controls():
        raw.setdefault(name, 0.0)

    unknown = sorted(set(raw) - airframe.target_names())
    if unknown:
        for name in unknown:
            logger.warning("Unknown field in target: %s", name)
        raise UnknownTargetFieldError(unknown, airframe.tag)

    for name, value in DEFAULTS.items():
        raw.setdefault(name, value)

    if 'throttle' in raw:
        raw['motor'] = raw.pop('throttle')

    normalized = {}
    for name, value in raw.items():
        if is_empty(value):
            logger.debug("Target '%s' explicitly free", name)
            continue
        normalized[name] = _as_float(name, value)

    logger.debug("Normalized %s target: %s", airframe.tag, normalized)
    return normalized
