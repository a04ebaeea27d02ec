"""
Trim Record Persistence

Saves a trim result as one MATLAB-compatible struct named 'Trim':

    Trim.variant     airframe tag
    Trim.target      normalized target
    Trim.states      per-block state arrays
    Trim.inputs      motor, actuators, names
    Trim.outputs     accels (ax, ay, az), wind_axes (airspeed, alpha, beta)
                     and every solved output
    Trim.op_spec     serialized TrimProblem
    Trim.op_report   serialized TrimSolution

load_trim() reads it back as nested dicts; bundle_from_record() rebuilds a
TrimBundle that can seed the next trim request.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import numpy as np
from scipy.io import loadmat, savemat

from trim.problem import TrimBundle

logger = logging.getLogger(__name__)

RECORD_NAME = 'Trim'


def _to_mat(value: Any) -> Any:
    """Convert nested Python values into types savemat can write."""
    if value is None:
        return np.zeros((0, 0))
    if isinstance(value, Mapping):
        return {str(k): _to_mat(v) for k, v in value.items()}
    if isinstance(value, (str, bool)):
        return value
    if isinstance(value, (list, tuple)):
        if value and all(isinstance(v, str) for v in value):
            return np.array(value, dtype=object)
        return np.asarray(value, dtype=float)
    if isinstance(value, np.ndarray):
        return value
    return np.asarray(value)


def trim_record(bundle: TrimBundle) -> Dict[str, Any]:
    """Plain nested-dict form of a trim bundle."""
    names = bundle.problem.inputs.names if bundle.problem is not None else ()
    outputs = {
        'accels': bundle.accels,
        'wind_axes': bundle.wind_axes,
    }
    if bundle.solution is not None:
        outputs.update(bundle.solution.outputs)

    return {
        'variant': bundle.variant or '',
        'target': dict(bundle.target),
        'states': dict(bundle.states),
        'inputs': {
            'motor': bundle.motor,
            'actuators': bundle.actuators,
            'names': list(names),
        },
        'outputs': outputs,
        'op_spec': bundle.problem.to_dict() if bundle.problem is not None else None,
        'op_report': bundle.solution.to_dict() if bundle.solution is not None else None,
    }


def save_trim(path: Union[str, Path], bundle: TrimBundle, verbose: bool = False) -> Path:
    """
    Write a trim bundle to a .mat file.

    Args:
        path: Output file (.mat appended if missing)
        bundle: Materialized trim result
        verbose: Print a confirmation

    Returns:
        Path written
    """
    path = Path(path)
    if path.suffix != '.mat':
        path = path.with_suffix(path.suffix + '.mat')

    savemat(str(path), {RECORD_NAME: _to_mat(trim_record(bundle))}, long_field_names=True)

    logger.info("Trim conditions saved as: %s", path)
    if verbose:
        print(f"\n Trim conditions saved as:\t {path}")
    return path


def load_trim(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a trim record written by save_trim().

    Returns:
        Nested dict (structs become dicts, cell arrays become lists)

    Raises:
        KeyError: file has no 'Trim' record
    """
    data = loadmat(str(path), simplify_cells=True)
    if RECORD_NAME not in data:
        raise KeyError(f"{path} has no '{RECORD_NAME}' record")
    return data[RECORD_NAME]


def _as_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def bundle_from_record(record: Mapping[str, Any]) -> TrimBundle:
    """Rebuild a seed TrimBundle from a loaded trim record."""
    states = {
        name: np.atleast_1d(np.asarray(value, dtype=float))
        for name, value in _as_dict(record.get('states')).items()
    }
    inputs = _as_dict(record.get('inputs'))
    outputs = _as_dict(record.get('outputs'))
    target = {name: float(value) for name, value in _as_dict(record.get('target')).items()}

    return TrimBundle(
        states=states,
        motor=float(inputs.get('motor', 0.0)),
        actuators=np.atleast_1d(np.asarray(inputs.get('actuators', []), dtype=float)),
        accels=np.atleast_1d(np.asarray(outputs.get('accels', np.zeros(3)), dtype=float)),
        wind_axes=np.atleast_1d(np.asarray(outputs.get('wind_axes', np.zeros(3)), dtype=float)),
        target=target,
        variant=str(record.get('variant')) if record.get('variant') else None,
    )
