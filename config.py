"""
UAV Configuration and Trim Solver Settings

Dataclasses for the physical parameters of the supported airframes and for
the equilibrium solver, plus the named parameter sets used by the
reference models:

- UltraStick 25e / UltraStick 120: rigid RC airframes with an electric
  motor modelled as a first-order engine-speed state
- miniMUTT: flying-wing aeroelastic demonstrator with flexible modes,
  unsteady-aero lag states and DT1 filter states

All units SI, angles in radians.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from aero.coefficients import AeroCoefficients


# Default actuator travel when no limit table entry exists (25 deg)
DEFAULT_SURFACE_LIMIT = 0.4363

# Control surfaces per airframe family, in actuator-vector order
RIGID_CONTROLS = ('elevator', 'rudder', 'aileron', 'l_flap', 'r_flap')
AEROELASTIC_CONTROLS = ('elevator', 'aileron', 'L1', 'L4', 'R1', 'R4')


@dataclass
class AircraftParameters:
    """
    Mass properties and reference geometry.
    """
    mass: float          # kg
    S: float             # Reference wing area (m²)
    b: float             # Wing span (m)
    c_bar: float         # Mean aerodynamic chord (m)
    Ixx: float           # kg·m²
    Iyy: float           # kg·m²
    Izz: float           # kg·m²


@dataclass
class EngineParameters:
    """
    Electric motor/propeller modelled as a first-order speed lag.

        ω̇ = (ω_max·δt - ω) / τ
        T = k_T·ω·|ω|
    """
    omega_max: float     # Shaft speed at full throttle (rad/s)
    k_thrust: float      # Thrust coefficient (N·s²)
    tau: float           # Spool-up time constant (s)


@dataclass
class AeroelasticParameters:
    """
    Flexible-mode, unsteady-aero and filter parameters.

    Each flexible mode k obeys
        η̈_k = -2ζ_k ω_k η̇_k - ω_k² η_k + q̄S (Q_α,k α + Σ_j Q_δ,kj δ_j) / m_k

    Lag states follow a first-order Roger-type approximation
        ẋ_i = -(2V/c̄) b_i x_i + q + Σ_k η̇_k
    """
    omega_modes: Tuple[float, ...]
    zeta_modes: Tuple[float, ...]
    generalized_mass: Tuple[float, ...]
    Q_alpha: Tuple[float, ...]
    Q_surfaces: Tuple[Tuple[float, ...], ...]   # n_modes x n_surfaces
    CL_eta: Tuple[float, ...]
    Cm_eta: Tuple[float, ...]
    lag_poles: Tuple[float, ...]
    CL_lag: Tuple[float, ...]
    tau_dt1_accel: float = 0.02
    tau_dt1_surface: float = 0.02

    @property
    def n_modes(self) -> int:
        return len(self.omega_modes)

    @property
    def n_lag(self) -> int:
        return len(self.lag_poles)


@dataclass
class UAVConfig:
    """
    Complete airframe description used by the reference models and by the
    default trim seeds.
    """
    name: str
    params: AircraftParameters
    aero: AeroCoefficients
    controls: Tuple[str, ...]
    trim_airspeed: float                 # Default seed airspeed (m/s)
    trim_altitude: float = 100.0         # Default seed altitude (m)
    alpha_guess: float = 0.05            # Default seed angle of attack (rad)
    engine: Optional[EngineParameters] = None
    max_thrust: float = 0.0              # Direct thrust for engine-less models (N)
    aeroelastic: Optional[AeroelasticParameters] = None


@dataclass
class SolverSettings:
    """
    Equilibrium solver tuning.

    method:          'SLSQP' (sequential quadratic programming) or
                     'trust-constr' (interior point)
    max_iterations:  optimizer iteration limit
    max_evaluations: evaluator call budget, finite-difference calls included
    tolerance:       residual norm at which the trim counts as converged
    ftol:            objective tolerance handed to SLSQP
    fd_step:         central finite-difference step for the Jacobian
    polish:          refine with a bounded least-squares pass when the
                     optimizer stops above tolerance
    verbose:         print optimizer iterations
    """
    method: str = 'SLSQP'
    max_iterations: int = 500
    max_evaluations: int = 100000
    tolerance: float = 1e-5
    ftol: float = 1e-14
    fd_step: float = 1e-6
    polish: bool = True
    verbose: bool = False
    options: dict = field(default_factory=dict)


# =============================================================================
# UltraStick 25e (Rigid-A)
# =============================================================================

ULTRASTICK25E_AERO = AeroCoefficients(
    CL_0=0.10,
    CL_alpha=4.5,
    CL_q=4.0,
    CL_delta_e=0.30,
    CL_delta_f=0.60,
    CD_0=0.030,
    K=0.060,
    CD_delta_f=0.05,
    Cm_0=0.02,
    Cm_alpha=-0.50,
    Cm_q=-10.0,
    Cm_delta_e=-0.80,
    Cm_delta_f=0.05,
    CY_beta=-0.30,
    CY_delta_r=0.15,
    Cl_beta=-0.05,
    Cl_p=-0.40,
    Cl_r=0.10,
    Cl_delta_a=0.15,
    Cl_delta_r=0.005,
    Cn_beta=0.06,
    Cn_p=-0.03,
    Cn_r=-0.10,
    Cn_delta_a=-0.01,
    Cn_delta_r=-0.06
)

ULTRASTICK25E = UAVConfig(
    name='UltraStick25e',
    params=AircraftParameters(
        mass=1.959,
        S=0.3097,
        b=1.27,
        c_bar=0.25,
        Ixx=0.07151,
        Iyy=0.08636,
        Izz=0.1345
    ),
    aero=ULTRASTICK25E_AERO,
    controls=RIGID_CONTROLS,
    trim_airspeed=17.0,
    engine=EngineParameters(omega_max=1000.0, k_thrust=8.0e-6, tau=0.1)
)


# =============================================================================
# UltraStick 120 (Rigid-B): same layout, larger airframe
# =============================================================================

ULTRASTICK120 = UAVConfig(
    name='UltraStick120',
    params=AircraftParameters(
        mass=7.41,
        S=0.77,
        b=1.92,
        c_bar=0.40,
        Ixx=0.89,
        Iyy=0.70,
        Izz=1.56
    ),
    aero=ULTRASTICK25E_AERO,
    controls=RIGID_CONTROLS,
    trim_airspeed=17.0,
    alpha_guess=0.09,
    engine=EngineParameters(omega_max=900.0, k_thrust=2.5e-5, tau=0.15)
)


# =============================================================================
# miniMUTT (Aeroelastic)
# =============================================================================

MINIMUTT_AERO = AeroCoefficients(
    CL_0=0.05,
    CL_alpha=4.8,
    CL_q=3.0,
    CL_delta_e=0.40,
    CL_delta_f=0.20,
    CD_0=0.020,
    K=0.040,
    CD_delta_f=0.02,
    Cm_0=0.01,
    Cm_alpha=-0.30,
    Cm_q=-4.0,
    Cm_delta_e=-0.40,
    Cm_delta_f=-0.05,
    CY_beta=-0.15,
    Cl_beta=-0.04,
    Cl_p=-0.50,
    Cl_r=0.08,
    Cl_delta_a=0.20,
    Cn_beta=0.03,
    Cn_p=-0.02,
    Cn_r=-0.04,
    Cn_delta_a=-0.015
)

MINIMUTT_AEROELASTIC = AeroelasticParameters(
    omega_modes=(31.4, 75.0),
    zeta_modes=(0.02, 0.03),
    generalized_mass=(1.0, 1.0),
    Q_alpha=(0.5, 0.1),
    Q_surfaces=(
        (0.05, 0.0, 0.02, 0.02, 0.02, 0.02),
        (0.01, 0.0, 0.03, -0.03, 0.03, -0.03),
    ),
    CL_eta=(-0.8, 0.1),
    Cm_eta=(0.2, -0.05),
    lag_poles=(0.2, 0.8),
    CL_lag=(-0.05, -0.02)
)

MINIMUTT = UAVConfig(
    name='miniMUTT',
    params=AircraftParameters(
        mass=5.0,
        S=0.60,
        b=3.07,
        c_bar=0.20,
        Ixx=2.0,
        Iyy=0.5,
        Izz=2.4
    ),
    aero=MINIMUTT_AERO,
    controls=AEROELASTIC_CONTROLS,
    trim_airspeed=23.0,
    alpha_guess=0.04,
    max_thrust=20.0,
    aeroelastic=MINIMUTT_AEROELASTIC
)
