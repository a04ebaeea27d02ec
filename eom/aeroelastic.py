"""
Aeroelastic Flying-Wing Model (miniMUTT)

Rigid-body 6-DOF core from eom.six_dof extended with flexible wing modes,
unsteady-aerodynamic lag states and DT1 filter states. Reference evaluator
for the aeroelastic airframe.

State vector (trim block order):
    [φ, θ, ψ, p, q, r, u, v, w, Xe, Ye, Ze,     core (12)
     x_acc (n_modes),                           'dt1_accel'
     x_surf (n_surfaces),                       'dt1_ctrl_surf'
     x_lag (n_lag),                             'lag'
     η (n_modes),                               'flex'
     η̇ (n_modes)]                              'flex_rates'

Input vector:
    [δt, δe, δa, L1, L4, R1, R4]

Structural dynamics (modal):
    η̈_k = -2ζ_k ω_k η̇_k - ω_k² η_k + q̄S (Q_α,k α + Σ_j Q_δ,kj δ_j) / m_k

Unsteady aero lag (first-order approximation):
    ẋ_lag,i = -(2V/c̄) b_i x_lag,i + q + Σ_k η̇_k

DT1 filters (derivative estimates, output = (input - x)/τ):
    ẋ_acc  = (η̇ - x_acc) / τ_acc
    ẋ_surf = (δ - x_surf) / τ_surf

Aerodynamic coupling:
    C_L += Σ C_Lη,k η_k + Σ C_L,lag,i x_lag,i
    C_m += Σ C_mη,k η_k

Assumptions:
- Small elastic deflections, modes uncoupled structurally
- Thrust from a direct throttle-to-thrust map (no motor state)

References:
    Theis, Pfifer, Seiler, "Robust Control Design for Active Flutter
    Suppression", AIAA SciTech 2016 (miniMUTT model structure)
"""

import numpy as np

from config import UAVConfig
from aero.coefficients import compute_all_coefficients, split_secondary_surfaces
from forces_moments import (
    add_thrust,
    coefficients_to_forces_moments,
    compute_dynamic_pressure,
    compute_total_forces,
)
from eom.six_dof import N_CORE, PHI, THETA, P, Q, R, air_data, core_outputs, rigid_body_derivatives
from trim.problem import Evaluation


class AeroelasticModel:
    """
    Flexible flying-wing UAV evaluator.

    evaluate(x, u) -> Evaluation(x_dot, outputs)
    """

    def __init__(self, config: UAVConfig):
        if config.aeroelastic is None:
            raise ValueError(f"{config.name} has no aeroelastic parameters")
        self.config = config
        self.params = config.params
        self.flex = config.aeroelastic
        self.controls = tuple(config.controls)
        self.g = 9.81

        n_modes = self.flex.n_modes
        n_surf = len(self.controls)
        n_lag = self.flex.n_lag

        # Block slices in state order
        self.slices = {}
        start = N_CORE
        for name, size in (('dt1_accel', n_modes),
                           ('dt1_ctrl_surf', n_surf),
                           ('lag', n_lag),
                           ('flex', n_modes),
                           ('flex_rates', n_modes)):
            self.slices[name] = slice(start, start + size)
            start += size
        self.state_size = start
        self.input_size = 1 + n_surf

        self._omega = np.asarray(self.flex.omega_modes, dtype=float)
        self._zeta = np.asarray(self.flex.zeta_modes, dtype=float)
        self._m_gen = np.asarray(self.flex.generalized_mass, dtype=float)
        self._Q_alpha = np.asarray(self.flex.Q_alpha, dtype=float)
        self._Q_surf = np.asarray(self.flex.Q_surfaces, dtype=float)
        self._lag_poles = np.asarray(self.flex.lag_poles, dtype=float)

    def block(self, x: np.ndarray, name: str) -> np.ndarray:
        return x[self.slices[name]]

    def evaluate(self, x: np.ndarray, u: np.ndarray) -> Evaluation:
        x = np.asarray(x, dtype=float)
        u = np.asarray(u, dtype=float)
        surfaces = u[1:]
        surf = dict(zip(self.controls, surfaces))

        eta = self.block(x, 'flex')
        eta_dot = self.block(x, 'flex_rates')
        x_lag = self.block(x, 'lag')
        x_acc = self.block(x, 'dt1_accel')
        x_surf = self.block(x, 'dt1_ctrl_surf')

        V_air, alpha, beta, rho = air_data(x)
        q_bar = compute_dynamic_pressure(rho, V_air)
        delta_f, delta_f_diff = split_secondary_surfaces(
            [surf['L1'], surf['L4']], [surf['R1'], surf['R4']]
        )

        coeffs = compute_all_coefficients(
            alpha=alpha,
            beta=beta,
            p=x[P], q=x[Q], r=x[R],
            delta_e=surf['elevator'],
            delta_a=surf['aileron'],
            delta_r=0.0,
            V=V_air,
            c_bar=self.params.c_bar,
            b=self.params.b,
            coeffs=self.config.aero,
            delta_f=delta_f,
            delta_f_diff=delta_f_diff
        )
        coeffs['CL'] += (np.dot(self.flex.CL_eta, eta) +
                         np.dot(self.flex.CL_lag, x_lag))
        coeffs['Cm'] += np.dot(self.flex.Cm_eta, eta)

        aero_fm = coefficients_to_forces_moments(
            coeffs, alpha, q_bar, self.params.S, self.params.b, self.params.c_bar
        )
        contact_fm = add_thrust(aero_fm, self.config.max_thrust * u[0])
        total_fm = compute_total_forces(
            contact_fm, self.params.mass, x[PHI], x[THETA], self.g
        )
        core_dot = rigid_body_derivatives(self.params, x, total_fm)

        # Modal dynamics
        generalized_force = q_bar * self.params.S * (
            self._Q_alpha * alpha + self._Q_surf @ surfaces
        ) / self._m_gen
        eta_ddot = (-2.0 * self._zeta * self._omega * eta_dot
                    - self._omega**2 * eta
                    + generalized_force)

        lag_rate = 2.0 * V_air / self.params.c_bar * self._lag_poles
        x_lag_dot = -lag_rate * x_lag + x[Q] + np.sum(eta_dot)

        x_acc_dot = (eta_dot - x_acc) / self.flex.tau_dt1_accel
        x_surf_dot = (surfaces - x_surf) / self.flex.tau_dt1_surface

        x_dot = np.concatenate([
            core_dot, x_acc_dot, x_surf_dot, x_lag_dot, eta_dot, eta_ddot
        ])
        outputs = core_outputs(x, core_dot, contact_fm, self.params.mass)

        return Evaluation(x_dot=x_dot, outputs=outputs)
