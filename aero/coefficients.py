"""
Aerodynamic Coefficient Models

Computes non-dimensional aerodynamic coefficients for small fixed-wing UAVs
from airflow angles, body rates and control-surface deflections using a
linear stability-derivative buildup.

Longitudinal:
    C_L = C_L0 + C_Lα·α + C_Lq·q̂ + C_Lδe·δe + C_Lδf·δf
    C_D = C_D0 + K·C_L² + C_Dδf·|δf|
    C_m = C_m0 + C_mα·α + C_mq·q̂ + C_mδe·δe + C_mδf·δf

Lateral-Directional:
    C_Y = C_Yβ·β + C_Yp·p̂ + C_Yr·r̂ + C_Yδa·δa + C_Yδr·δr
    C_l = C_lβ·β + C_lp·p̂ + C_lr·r̂ + C_lδa·(δa + δf_diff) + C_lδr·δr
    C_n = C_nβ·β + C_np·p̂ + C_nr·r̂ + C_nδa·δa + C_nδr·δr

where q̂ = q·c̄/2V, p̂ = p·b/2V, r̂ = r·b/2V.

Secondary surfaces (flaps, flutter-suppression flaps) enter as a symmetric
deflection δf (lift/moment increment) and a differential deflection
δf_diff (treated as extra aileron).

Assumptions:
- Linear model valid about the trim condition
- Stability axes for CL, CD; body axes for CX, CZ
- Quasi-steady aerodynamics (unsteady lag terms are added by the
  aeroelastic model)

References:
    Roskam, "Airplane Flight Dynamics", Chapters 3-4
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple


@dataclass
class AeroCoefficients:
    """
    Non-dimensional aerodynamic coefficient derivatives (per radian).
    """
    # Lift
    CL_0: float = 0.0
    CL_alpha: float = 0.0
    CL_q: float = 0.0
    CL_delta_e: float = 0.0
    CL_delta_f: float = 0.0      # Symmetric flap

    # Drag polar
    CD_0: float = 0.0
    K: float = 0.0               # Induced drag factor (CD = CD0 + K·CL²)
    CD_delta_f: float = 0.0

    # Pitching moment
    Cm_0: float = 0.0
    Cm_alpha: float = 0.0
    Cm_q: float = 0.0
    Cm_delta_e: float = 0.0
    Cm_delta_f: float = 0.0

    # Side force
    CY_beta: float = 0.0
    CY_p: float = 0.0
    CY_r: float = 0.0
    CY_delta_a: float = 0.0
    CY_delta_r: float = 0.0

    # Rolling moment
    Cl_beta: float = 0.0
    Cl_p: float = 0.0
    Cl_r: float = 0.0
    Cl_delta_a: float = 0.0
    Cl_delta_r: float = 0.0

    # Yawing moment
    Cn_beta: float = 0.0
    Cn_p: float = 0.0
    Cn_r: float = 0.0
    Cn_delta_a: float = 0.0
    Cn_delta_r: float = 0.0


def nondimensional_rate(rate: float, length: float, V: float) -> float:
    """Rate normalised by 2V over a reference length (p̂, q̂, r̂)."""
    return rate * length / (2.0 * V) if V > 1e-6 else 0.0


def split_secondary_surfaces(
    left: Sequence[float],
    right: Sequence[float]
) -> Tuple[float, float]:
    """
    Reduce left/right secondary surfaces to symmetric and differential parts.

    Args:
        left: Deflections of the left-wing surfaces (rad)
        right: Deflections of the right-wing surfaces (rad)

    Returns:
        (delta_f, delta_f_diff): mean deflection and half right-minus-left
    """
    left = np.asarray(left, dtype=float)
    right = np.asarray(right, dtype=float)
    delta_f = 0.5 * (left.mean() + right.mean())
    delta_f_diff = 0.5 * (right.mean() - left.mean())
    return float(delta_f), float(delta_f_diff)


def compute_longitudinal_coefficients(
    alpha: float,
    q: float,
    delta_e: float,
    delta_f: float,
    V: float,
    c_bar: float,
    coeffs: AeroCoefficients
) -> Tuple[float, float, float]:
    """
    Compute lift, drag and pitching moment coefficients.

    Args:
        alpha: Angle of attack (rad)
        q: Pitch rate (rad/s)
        delta_e: Elevator deflection (rad), positive TED
        delta_f: Symmetric flap deflection (rad)
        V: True airspeed (m/s)
        c_bar: Mean aerodynamic chord (m)
        coeffs: AeroCoefficients

    Returns:
        (CL, CD, Cm)
    """
    q_hat = nondimensional_rate(q, c_bar, V)

    CL = (coeffs.CL_0 +
          coeffs.CL_alpha * alpha +
          coeffs.CL_q * q_hat +
          coeffs.CL_delta_e * delta_e +
          coeffs.CL_delta_f * delta_f)

    CD = coeffs.CD_0 + coeffs.K * CL**2 + coeffs.CD_delta_f * abs(delta_f)

    Cm = (coeffs.Cm_0 +
          coeffs.Cm_alpha * alpha +
          coeffs.Cm_q * q_hat +
          coeffs.Cm_delta_e * delta_e +
          coeffs.Cm_delta_f * delta_f)

    return CL, CD, Cm


def compute_lateral_coefficients(
    beta: float,
    p: float,
    r: float,
    delta_a: float,
    delta_r: float,
    delta_f_diff: float,
    V: float,
    b: float,
    coeffs: AeroCoefficients
) -> Tuple[float, float, float]:
    """
    Compute side force, rolling and yawing moment coefficients.

    Args:
        beta: Sideslip angle (rad)
        p, r: Roll and yaw rates (rad/s)
        delta_a: Combined aileron (rad), (δa_r - δa_l)/2
        delta_r: Rudder (rad)
        delta_f_diff: Differential secondary-surface deflection (rad)
        V: True airspeed (m/s)
        b: Wing span (m)
        coeffs: AeroCoefficients

    Returns:
        (CY, Cl, Cn)
    """
    p_hat = nondimensional_rate(p, b, V)
    r_hat = nondimensional_rate(r, b, V)

    CY = (coeffs.CY_beta * beta +
          coeffs.CY_p * p_hat +
          coeffs.CY_r * r_hat +
          coeffs.CY_delta_a * delta_a +
          coeffs.CY_delta_r * delta_r)

    Cl = (coeffs.Cl_beta * beta +
          coeffs.Cl_p * p_hat +
          coeffs.Cl_r * r_hat +
          coeffs.Cl_delta_a * (delta_a + delta_f_diff) +
          coeffs.Cl_delta_r * delta_r)

    Cn = (coeffs.Cn_beta * beta +
          coeffs.Cn_p * p_hat +
          coeffs.Cn_r * r_hat +
          coeffs.Cn_delta_a * delta_a +
          coeffs.Cn_delta_r * delta_r)

    return CY, Cl, Cn


def compute_all_coefficients(
    alpha: float,
    beta: float,
    p: float,
    q: float,
    r: float,
    delta_e: float,
    delta_a: float,
    delta_r: float,
    V: float,
    c_bar: float,
    b: float,
    coeffs: AeroCoefficients,
    delta_f: float = 0.0,
    delta_f_diff: float = 0.0
) -> Dict[str, float]:
    """
    Compute all six aerodynamic coefficients.

    Returns:
        Dict with CL, CD, Cm, CY, Cl, Cn
    """
    CL, CD, Cm = compute_longitudinal_coefficients(
        alpha, q, delta_e, delta_f, V, c_bar, coeffs
    )

    CY, Cl, Cn = compute_lateral_coefficients(
        beta, p, r, delta_a, delta_r, delta_f_diff, V, b, coeffs
    )

    return {
        'CL': CL, 'CD': CD, 'Cm': Cm,
        'CY': CY, 'Cl': Cl, 'Cn': Cn
    }
