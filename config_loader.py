"""
Airframe Data Loader

Reads airframes.yaml:
- Actuator limit tables ({surface: {pos_lim, neg_lim}}) for the trim compiler
- Level-flight trim seeds used when no prior trim exists
- Solver settings overrides

Usage:
    from config_loader import load_actuator_limits, load_trim_seed
    limits = load_actuator_limits('UltraStick25e')
    seed = load_trim_seed('UltraStick25e')
"""

import yaml
import numpy as np
from pathlib import Path
from dataclasses import fields
from typing import Dict, List, Optional, Any

from config import SolverSettings
from trim.problem import TrimBundle
from trim.variants import get_variant


def get_yaml_path() -> Path:
    """Get path to airframes.yaml."""
    return Path(__file__).parent / 'airframes.yaml'


def _read_yaml(yaml_path: Optional[Path] = None) -> Dict[str, Any]:
    if yaml_path is None:
        yaml_path = get_yaml_path()

    if not yaml_path.exists():
        raise ValueError(f"YAML file not found: {yaml_path}")

    with open(yaml_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    return data or {}


def get_available_airframes(yaml_path: Optional[Path] = None) -> List[str]:
    """Return list of airframes with data in the YAML file."""
    try:
        data = _read_yaml(yaml_path)
    except ValueError:
        return []
    return list((data.get('airframes') or {}).keys())


def _airframe_entry(name: str, yaml_path: Optional[Path] = None) -> Dict[str, Any]:
    airframes = _read_yaml(yaml_path).get('airframes') or {}
    # Tags match case-insensitively, as in trim.variants
    for key, entry in airframes.items():
        if key.lower() == name.lower():
            return entry or {}
    raise ValueError(f"Airframe '{name}' not found. Available: {list(airframes.keys())}")


def load_actuator_limits(name: str, yaml_path: Optional[Path] = None) -> Dict[str, Dict[str, float]]:
    """
    Actuator limit table for one airframe.

    Returns:
        {surface: {'pos_lim': float, 'neg_lim': float}}; surfaces without an
        entry are absent and fall back to the default limit in the compiler
    """
    entry = _airframe_entry(name, yaml_path)
    limits = {}
    for surface, lim in (entry.get('actuators') or {}).items():
        limits[surface] = {
            'pos_lim': float(lim['pos_lim']),
            'neg_lim': float(lim['neg_lim']),
        }
    return limits


def load_trim_seed(name: str, yaml_path: Optional[Path] = None) -> TrimBundle:
    """
    Level-flight prior trim bundle for one airframe.

    Starts from the airframe's default seeds and applies the airspeed,
    altitude, alpha and motor values from the YAML file.
    """
    entry = _airframe_entry(name, yaml_path)
    seed = entry.get('trim_seed') or {}
    airframe = get_variant(name)
    bundle = airframe.default_seeds()

    V = float(seed.get('airspeed', bundle.wind_axes[0]))
    alpha = float(seed.get('alpha', bundle.wind_axes[1]))
    h = float(seed.get('altitude', -bundle.states['inertial'][2]))

    bundle.states['attitude'] = np.array([0.0, alpha, 0.0])
    bundle.states['velocities'] = np.array([V * np.cos(alpha), 0.0, V * np.sin(alpha)])
    bundle.states['inertial'] = np.array([0.0, 0.0, -h])
    bundle.wind_axes = np.array([V, alpha, 0.0])

    if 'motor' in seed:
        bundle.motor = float(seed['motor'])
        engine = airframe.config.engine
        if engine is not None and 'engine_speed' in bundle.states:
            bundle.states['engine_speed'] = np.array([bundle.motor * engine.omega_max])

    return bundle


def load_solver_settings(yaml_path: Optional[Path] = None) -> SolverSettings:
    """SolverSettings with the YAML overrides applied; unknown keys are rejected."""
    raw = _read_yaml(yaml_path).get('solver') or {}
    valid = {f.name for f in fields(SolverSettings)}
    unknown = sorted(set(raw) - valid)
    if unknown:
        raise ValueError(f"Unknown solver settings: {unknown}. Available: {sorted(valid)}")

    defaults = SolverSettings()
    kwargs = {}
    for key, value in raw.items():
        current = getattr(defaults, key)
        if isinstance(current, bool):
            kwargs[key] = bool(value)
        elif isinstance(current, int):
            kwargs[key] = int(value)
        elif isinstance(current, float):
            kwargs[key] = float(value)
        else:
            kwargs[key] = value
    return SolverSettings(**kwargs)


if __name__ == "__main__":
    print("=" * 60)
    print("Airframe Data Loader Test")
    print("=" * 60)

    for name in get_available_airframes():
        print(f"\n--- {name} ---")
        try:
            limits = load_actuator_limits(name)
            seed = load_trim_seed(name)
            for surface, lim in limits.items():
                print(f"  {surface}: +{np.degrees(lim['pos_lim']):.0f} / {np.degrees(lim['neg_lim']):.0f} deg")
            print(f"  Seed: V={seed.wind_axes[0]:.1f} m/s, alpha={np.degrees(seed.wind_axes[1]):.1f} deg, motor={seed.motor:.2f}")
        except Exception as e:
            print(f"  ERROR: {e}")

    print(f"\nSolver: {load_solver_settings()}")
    print("\n" + "=" * 60)
