"""
Six Degrees of Freedom Equations of Motion (Rigid UAV)

Nonlinear rigid-body equations of motion in body axes with Euler-angle
kinematics and NED position, plus a first-order motor speed state. This is
the reference derivative/output evaluator for the rigid airframes
(UltraStick 25e / UltraStick 120).

State vector (13 states, trim block order):
    [φ, θ, ψ, p, q, r, u, v, w, Xe, Ye, Ze, ω]

    φ, θ, ψ    - Euler angles (rad)                       block 'attitude'
    p, q, r    - Body-axis angular rates (rad/s)          block 'rates'
    u, v, w    - Body-axis velocities (m/s)               block 'velocities'
    Xe, Ye, Ze - NED position, Ze positive down (m)       block 'inertial'
    ω          - Motor shaft speed (rad/s)                block 'engine_speed'

Input vector:
    [δt, δe, δr, δa, δf_l, δf_r]  - throttle (0-1) then actuators (rad)

Equations of motion:
    u̇ = rv - qw + X/m
    v̇ = pw - ru + Y/m
    ẇ = qu - pv + Z/m

    ṗ = (L - (Izz - Iyy)qr) / Ixx
    q̇ = (M - (Ixx - Izz)pr) / Iyy
    ṙ = (N - (Iyy - Ixx)pq) / Izz

    φ̇ = p + (q sin φ + r cos φ) tan θ
    θ̇ = q cos φ - r sin φ
    ψ̇ = (q sin φ + r cos φ) / cos θ

    Ẋe, Ẏe, Że = DCMᵀ [u, v, w]

Assumptions:
- Rigid body, flat Earth, constant mass, no wind
- Symmetric aircraft (Ixz = 0)
- Thrust along the body x-axis

References:
    Roskam, "Airplane Flight Dynamics", Chapter 1
    Stevens & Lewis, "Aircraft Control and Simulation", Chapter 2
"""

import numpy as np
from typing import Dict, Tuple

from config import AircraftParameters, UAVConfig
from aero.coefficients import compute_all_coefficients, split_secondary_surfaces
from forces_moments import (
    ForceMoment,
    add_thrust,
    coefficients_to_forces_moments,
    compute_airspeed_from_body_velocities,
    compute_alpha_beta,
    compute_dynamic_pressure,
    compute_flight_path_angle,
    compute_specific_force,
    compute_standard_atmosphere_density,
    compute_total_forces,
)
from trim.problem import Evaluation


# Core state indices (shared with the aeroelastic model)
PHI, THETA, PSI = 0, 1, 2
P, Q, R = 3, 4, 5
U, V, W = 6, 7, 8
XE, YE, ZE = 9, 10, 11
N_CORE = 12

# Rigid model extra state
OMEGA = 12


def rigid_body_derivatives(
    params: AircraftParameters,
    x: np.ndarray,
    total_fm: ForceMoment
) -> np.ndarray:
    """
    Derivatives of the 12 core states.

    Args:
        params: Mass properties
        x: State vector, first 12 entries are the core states
        total_fm: Total body-axis forces (gravity included) and moments

    Returns:
        x_dot: 12-element core state derivative
    """
    phi, theta, psi = x[PHI], x[THETA], x[PSI]
    p, q, r = x[P], x[Q], x[R]
    u, v, w = x[U], x[V], x[W]

    m = params.mass
    Ixx, Iyy, Izz = params.Ixx, params.Iyy, params.Izz

    u_dot = r * v - q * w + total_fm.X / m
    v_dot = p * w - r * u + total_fm.Y / m
    w_dot = q * u - p * v + total_fm.Z / m

    p_dot = (total_fm.L - (Izz - Iyy) * q * r) / Ixx
    q_dot = (total_fm.M - (Ixx - Izz) * p * r) / Iyy
    r_dot = (total_fm.N - (Iyy - Ixx) * p * q) / Izz

    sin_phi, cos_phi = np.sin(phi), np.cos(phi)
    sin_theta, cos_theta = np.sin(theta), np.cos(theta)
    sin_psi, cos_psi = np.sin(psi), np.cos(psi)

    # Protect against gimbal lock
    if abs(cos_theta) < 1e-6:
        cos_theta = 1e-6 * np.sign(cos_theta) if cos_theta != 0 else 1e-6

    phi_dot = p + (q * sin_phi + r * cos_phi) * sin_theta / cos_theta
    theta_dot = q * cos_phi - r * sin_phi
    psi_dot = (q * sin_phi + r * cos_phi) / cos_theta

    xe_dot = (u * cos_theta * cos_psi +
              v * (sin_phi * sin_theta * cos_psi - cos_phi * sin_psi) +
              w * (cos_phi * sin_theta * cos_psi + sin_phi * sin_psi))

    ye_dot = (u * cos_theta * sin_psi +
              v * (sin_phi * sin_theta * sin_psi + cos_phi * cos_psi) +
              w * (cos_phi * sin_theta * sin_psi - sin_phi * cos_psi))

    ze_dot = -u * sin_theta + v * sin_phi * cos_theta + w * cos_phi * cos_theta

    return np.array([
        phi_dot, theta_dot, psi_dot,
        p_dot, q_dot, r_dot,
        u_dot, v_dot, w_dot,
        xe_dot, ye_dot, ze_dot
    ])


def air_data(x: np.ndarray) -> Tuple[float, float, float, float]:
    """
    Airspeed, α, β and density at the current state.

    Returns:
        (V, alpha, beta, rho)
    """
    V_air = compute_airspeed_from_body_velocities(x[U], x[V], x[W])
    alpha, beta = compute_alpha_beta(x[U], x[V], x[W])
    rho = compute_standard_atmosphere_density(-x[ZE])
    return V_air, alpha, beta, rho


def core_outputs(
    x: np.ndarray,
    core_dot: np.ndarray,
    contact_fm: ForceMoment,
    mass: float
) -> Dict[str, np.ndarray]:
    """
    Flight-condition outputs shared by all airframes.

    Args:
        x: State vector (core states first)
        core_dot: 12-element core state derivative
        contact_fm: Aerodynamic plus thrust forces (no gravity)
        mass: Aircraft mass (kg)

    Returns:
        Dict keyed by output name
    """
    V_air, alpha, beta, _ = air_data(x)
    accel = compute_specific_force(contact_fm, mass)

    return {
        'airspeed': V_air,
        'beta': beta,
        'alpha': alpha,
        'altitude': -x[ZE],
        'phi': x[PHI],
        'theta': x[THETA],
        'psi': x[PSI],
        'p': x[P],
        'q': x[Q],
        'r': x[R],
        'gamma': compute_flight_path_angle(core_dot[ZE], V_air),
        'ax': accel[0],
        'ay': accel[1],
        'az': accel[2],
        'euler_rates': core_dot[PHI:PSI + 1].copy(),
    }


class RigidBodyModel:
    """
    Nonlinear 6-DOF rigid UAV with a motor speed state.

    Implements the evaluator interface consumed by the trim solver:
    evaluate(x, u) -> Evaluation(x_dot, outputs).
    """

    state_size = N_CORE + 1

    def __init__(self, config: UAVConfig):
        if config.engine is None:
            raise ValueError(f"{config.name} has no engine parameters")
        self.config = config
        self.params = config.params
        self.controls = tuple(config.controls)
        self.input_size = 1 + len(self.controls)
        self.g = 9.81

    def _surfaces(self, u: np.ndarray) -> Dict[str, float]:
        return dict(zip(self.controls, u[1:]))

    def thrust(self, omega: float) -> float:
        """Propeller thrust (N) at shaft speed ω."""
        return self.config.engine.k_thrust * omega * abs(omega)

    def evaluate(self, x: np.ndarray, u: np.ndarray) -> Evaluation:
        """
        State derivative and outputs.

        Args:
            x: 13-element state vector
            u: Input vector [throttle, elevator, rudder, aileron, l_flap, r_flap]

        Returns:
            Evaluation
        """
        x = np.asarray(x, dtype=float)
        u = np.asarray(u, dtype=float)
        surf = self._surfaces(u)
        engine = self.config.engine

        V_air, alpha, beta, rho = air_data(x)
        q_bar = compute_dynamic_pressure(rho, V_air)
        delta_f, delta_f_diff = split_secondary_surfaces(
            [surf['l_flap']], [surf['r_flap']]
        )

        coeffs = compute_all_coefficients(
            alpha=alpha,
            beta=beta,
            p=x[P], q=x[Q], r=x[R],
            delta_e=surf['elevator'],
            delta_a=surf['aileron'],
            delta_r=surf['rudder'],
            V=V_air,
            c_bar=self.params.c_bar,
            b=self.params.b,
            coeffs=self.config.aero,
            delta_f=delta_f,
            delta_f_diff=delta_f_diff
        )

        aero_fm = coefficients_to_forces_moments(
            coeffs, alpha, q_bar, self.params.S, self.params.b, self.params.c_bar
        )
        contact_fm = add_thrust(aero_fm, self.thrust(x[OMEGA]))
        total_fm = compute_total_forces(
            contact_fm, self.params.mass, x[PHI], x[THETA], self.g
        )

        core_dot = rigid_body_derivatives(self.params, x, total_fm)
        omega_dot = (engine.omega_max * u[0] - x[OMEGA]) / engine.tau

        x_dot = np.append(core_dot, omega_dot)
        outputs = core_outputs(x, core_dot, contact_fm, self.params.mass)

        return Evaluation(x_dot=x_dot, outputs=outputs)
