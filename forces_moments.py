"""
Force, Moment and Air-Data Computation

Converts non-dimensional aerodynamic coefficients to body-axis forces and
moments and provides the air-data quantities the trim outputs are built
from (airspeed, α, β, flight-path angle, specific force, density).

Body-axis forces:
    X = q̄ S (C_L sin α - C_D cos α)    [forward]
    Y = q̄ S C_Y                         [right]
    Z = -q̄ S (C_L cos α + C_D sin α)   [down]

Body-axis moments:
    L = q̄ S b C_l,  M = q̄ S c̄ C_m,  N = q̄ S b C_n

Axes: body axes for forces, NED (down-positive Ze) for position.

References:
    Roskam, "Airplane Flight Dynamics", Chapter 1
"""

import numpy as np
from typing import Dict, Tuple
from dataclasses import dataclass


G = 9.81


@dataclass
class ForceMoment:
    """Body-axis forces (N) and moments (N·m)."""
    X: float = 0.0
    Y: float = 0.0
    Z: float = 0.0
    L: float = 0.0
    M: float = 0.0
    N: float = 0.0


def compute_standard_atmosphere_density(h: float) -> float:
    """
    Air density from altitude using the ISA troposphere model.

    Args:
        h: Altitude (m)

    Returns:
        rho: Air density (kg/m³)
    """
    if h < 11000:
        T = 288.15 - 0.0065 * h
        p = 101325 * (T / 288.15) ** 5.2561
    else:
        T = 216.65
        p = 22632 * np.exp(-0.0001577 * (h - 11000))

    return p / (287.05 * T)


def compute_dynamic_pressure(rho: float, V: float) -> float:
    """Dynamic pressure q̄ = ½ρV² (Pa)."""
    return 0.5 * rho * V**2


def coefficients_to_forces_moments(
    coeffs: Dict[str, float],
    alpha: float,
    q_bar: float,
    S: float,
    b: float,
    c_bar: float
) -> ForceMoment:
    """
    Convert aerodynamic coefficients to body-axis forces and moments.

    Args:
        coeffs: Dict with CL, CD, Cm, CY, Cl, Cn
        alpha: Angle of attack (rad)
        q_bar: Dynamic pressure (Pa)
        S, b, c_bar: Reference area (m²), span (m), chord (m)

    Returns:
        ForceMoment
    """
    cos_alpha = np.cos(alpha)
    sin_alpha = np.sin(alpha)

    CX = coeffs['CL'] * sin_alpha - coeffs['CD'] * cos_alpha
    CZ = -coeffs['CL'] * cos_alpha - coeffs['CD'] * sin_alpha

    qS = q_bar * S
    return ForceMoment(
        X=qS * CX,
        Y=qS * coeffs['CY'],
        Z=qS * CZ,
        L=qS * b * coeffs['Cl'],
        M=qS * c_bar * coeffs['Cm'],
        N=qS * b * coeffs['Cn']
    )


def compute_gravity_body(
    mass: float,
    phi: float,
    theta: float,
    g: float = G
) -> Tuple[float, float, float]:
    """
    Gravity force components in body axes.

        F_x = -m g sin θ
        F_y =  m g cos θ sin φ
        F_z =  m g cos θ cos φ
    """
    return (
        -mass * g * np.sin(theta),
        mass * g * np.cos(theta) * np.sin(phi),
        mass * g * np.cos(theta) * np.cos(phi)
    )


def add_thrust(fm: ForceMoment, thrust: float) -> ForceMoment:
    """Add thrust along the +x body axis (no moment)."""
    return ForceMoment(X=fm.X + thrust, Y=fm.Y, Z=fm.Z, L=fm.L, M=fm.M, N=fm.N)


def compute_total_forces(
    contact_fm: ForceMoment,
    mass: float,
    phi: float,
    theta: float,
    g: float = G
) -> ForceMoment:
    """
    Add gravity to the aerodynamic + propulsive forces.

    Args:
        contact_fm: Aerodynamic plus thrust forces and moments
        mass: Aircraft mass (kg)
        phi, theta: Roll and pitch angles (rad)

    Returns:
        ForceMoment with total forces
    """
    Fx_g, Fy_g, Fz_g = compute_gravity_body(mass, phi, theta, g)

    return ForceMoment(
        X=contact_fm.X + Fx_g,
        Y=contact_fm.Y + Fy_g,
        Z=contact_fm.Z + Fz_g,
        L=contact_fm.L,
        M=contact_fm.M,
        N=contact_fm.N
    )


def compute_specific_force(contact_fm: ForceMoment, mass: float) -> np.ndarray:
    """
    Body-axis specific force (what an accelerometer at the CG reads).

    Gravity is excluded, so unaccelerated flight reads
    (g sin θ, -g cos θ sin φ, -g cos θ cos φ).
    """
    return np.array([contact_fm.X, contact_fm.Y, contact_fm.Z]) / mass


def compute_airspeed_from_body_velocities(u: float, v: float, w: float) -> float:
    """Total airspeed from body velocity components (no wind)."""
    return np.sqrt(u**2 + v**2 + w**2)


def compute_alpha_beta(u: float, v: float, w: float) -> Tuple[float, float]:
    """
    Angle of attack and sideslip from body velocities.

        α = arctan(w/u)
        β = arcsin(v/V)
    """
    V = compute_airspeed_from_body_velocities(u, v, w)

    if V < 1e-6:
        return 0.0, 0.0

    alpha = np.arctan2(w, u)
    beta = np.arcsin(np.clip(v / V, -1.0, 1.0))

    return alpha, beta


def compute_flight_path_angle(ze_dot: float, V: float) -> float:
    """
    Flight-path angle from the NED vertical rate.

    γ = arcsin(-Ż_e / V), positive climbing.
    """
    if V < 1e-6:
        return 0.0
    return float(np.arcsin(np.clip(-ze_dot / V, -1.0, 1.0)))
