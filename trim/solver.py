"""
Equilibrium Solver

Solves a compiled TrimProblem against a derivative/output evaluator.

Free vector:
    z = [x_free, u_free]  - every state and input component not marked known

Residuals:
    r(z) = [ ẋ[steady_state],  y[known] - y_target  (active outputs only) ]

Objective:
    J(z) = rᵀr,   ∇J = 2 Jᵣᵀ r,   Jᵣ = ∂r/∂z by central finite differences

minimized within the box bounds of the VariableSpecs by
scipy.optimize.minimize:

    'SLSQP'         sequential quadratic programming (default)
    'trust-constr'  interior point

When the optimizer stops above tolerance the best point is refined with a
bounded least-squares pass (scipy.optimize.least_squares, 'trf').

The trim counts as converged when ||r|| <= settings.tolerance. Evaluator
calls, finite-difference calls included, are capped by
settings.max_evaluations; when the budget runs out the best point seen so
far is returned. Non-convergence is reported in the TrimSolution, not
raised.

References:
    Nocedal & Wright, "Numerical Optimization", Chapters 10 and 18
    Stevens & Lewis, "Aircraft Control and Simulation", Section 3.6 (trim)
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np
from scipy.optimize import Bounds, least_squares, minimize

from config import SolverSettings
from trim.problem import Evaluation, TrimProblem, TrimSolution

logger = logging.getLogger(__name__)

METHODS = ('SLSQP', 'trust-constr')

EvaluatorLike = Union[Callable[[np.ndarray, np.ndarray], Evaluation], object]


class _BudgetExhausted(Exception):
    """Evaluation budget reached inside the optimizer."""


def jacobian_fd(
    func: Callable[[np.ndarray], np.ndarray],
    x: np.ndarray,
    eps: float = 1e-6
) -> np.ndarray:
    """
    Compute Jacobian using central finite differences.

    Args:
        func: f(x) -> y, vector function
        x: Point at which to evaluate Jacobian
        eps: Perturbation size

    Returns:
        J: Jacobian matrix ∂f/∂x [m x n]
    """
    n = len(x)
    m = len(func(x))
    J = np.zeros((m, n))

    for i in range(n):
        x_plus = x.copy()
        x_minus = x.copy()
        x_plus[i] += eps
        x_minus[i] -= eps
        J[:, i] = (func(x_plus) - func(x_minus)) / (2 * eps)

    return J


def _evaluator_function(evaluator: EvaluatorLike) -> Callable[[np.ndarray, np.ndarray], Evaluation]:
    evaluate = getattr(evaluator, 'evaluate', evaluator)
    if not callable(evaluate):
        raise TypeError(f"{evaluator!r} is not an evaluator")
    return evaluate


class TrimResiduals:
    """
    Residual function over the free vector of one TrimProblem.

    Counts evaluator calls, enforces the evaluation budget and remembers the
    best point seen.
    """

    def __init__(self, problem: TrimProblem, evaluate: Callable, max_evaluations: int):
        self.problem = problem
        self.evaluate = evaluate
        self.max_evaluations = max_evaluations
        self.n_states = problem.state_size

        self.z0 = np.concatenate([problem.state_field('value'), problem.input_field('value')])
        known = np.concatenate([problem.state_field('known'), problem.input_field('known')])
        lower = np.concatenate([problem.state_field('lower'), problem.input_field('lower')])
        upper = np.concatenate([problem.state_field('upper'), problem.input_field('upper')])

        self.free = np.flatnonzero(~known)
        self.lower = lower[self.free]
        self.upper = upper[self.free]
        self.steady = problem.state_field('steady_state')

        # (output name, known component indices, target values)
        self.targets: List[Tuple[str, np.ndarray, np.ndarray]] = []
        for spec in problem.outputs:
            idx = np.flatnonzero(spec.spec.known)
            if spec.active and idx.size:
                self.targets.append((spec.name, idx, spec.spec.value[idx]))

        self.n_evaluations = 0
        self.best_norm = np.inf
        self.best_free = self.initial_guess()
        self._last: Optional[Tuple[bytes, np.ndarray]] = None

    @property
    def n_free(self) -> int:
        return self.free.size

    @property
    def n_equations(self) -> int:
        return int(np.sum(self.steady)) + sum(idx.size for _, idx, _ in self.targets)

    def initial_guess(self) -> np.ndarray:
        return np.clip(self.z0[self.free], self.lower, self.upper)

    def split(self, z_free: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Full state and input vectors for a free vector."""
        z = self.z0.copy()
        z[self.free] = z_free
        return z[:self.n_states], z[self.n_states:]

    def residual_of(self, evaluation: Evaluation) -> np.ndarray:
        x_dot = np.asarray(evaluation.x_dot, dtype=float).reshape(-1)
        parts = [x_dot[self.steady]]
        for name, idx, values in self.targets:
            y = np.atleast_1d(np.asarray(evaluation.outputs[name], dtype=float))
            parts.append(y[idx] - values)
        return np.concatenate(parts)

    def __call__(self, z_free: np.ndarray) -> np.ndarray:
        z_free = np.asarray(z_free, dtype=float)
        key = z_free.tobytes()
        if self._last is not None and self._last[0] == key:
            return self._last[1]

        if self.n_evaluations >= self.max_evaluations:
            raise _BudgetExhausted()
        self.n_evaluations += 1

        x, u = self.split(z_free)
        r = self.residual_of(self.evaluate(x, u))
        if not np.all(np.isfinite(r)):
            r = np.where(np.isfinite(r), r, 1e10)

        norm = float(np.linalg.norm(r))
        inside = np.all(z_free >= self.lower) and np.all(z_free <= self.upper)
        if inside and norm < self.best_norm:
            self.best_norm = norm
            self.best_free = z_free.copy()

        self._last = (key, r)
        return r

    def jacobian(self, z_free: np.ndarray, eps: float) -> np.ndarray:
        return jacobian_fd(self, np.asarray(z_free, dtype=float), eps)


def _minimize(residuals: TrimResiduals, settings: SolverSettings) -> Tuple[int, str]:
    """Run the optimizer from the seed; returns (iterations, message)."""
    eps = settings.fd_step

    def objective(z):
        r = residuals(z)
        return float(r @ r)

    def gradient(z):
        r = residuals(z)
        return 2.0 * residuals.jacobian(z, eps).T @ r

    options = {'maxiter': settings.max_iterations}
    if settings.method == 'SLSQP':
        options.update(ftol=settings.ftol, disp=settings.verbose)
    else:
        options.update(gtol=settings.ftol, xtol=settings.ftol,
                       verbose=2 if settings.verbose else 0)
    options.update(settings.options)

    result = minimize(
        objective,
        residuals.initial_guess(),
        jac=gradient,
        method=settings.method,
        bounds=Bounds(residuals.lower, residuals.upper),
        options=options,
    )
    # minimize may return a point other than the best one evaluated
    residuals(np.clip(result.x, residuals.lower, residuals.upper))
    return int(getattr(result, 'nit', 0)), str(result.message)


def _polish(residuals: TrimResiduals, settings: SolverSettings) -> Tuple[int, str]:
    """Bounded least-squares refinement from the best point seen."""
    if np.any(residuals.lower >= residuals.upper):
        return 0, 'least-squares refinement skipped (degenerate bounds)'

    eps = settings.fd_step
    result = least_squares(
        residuals,
        residuals.best_free,
        jac=lambda z: residuals.jacobian(z, eps),
        bounds=(residuals.lower, residuals.upper),
        method='trf',
        xtol=1e-15,
        ftol=1e-15,
        gtol=1e-15,
        max_nfev=settings.max_iterations,
        verbose=2 if settings.verbose else 0,
    )
    return int(result.njev or 0), str(result.message)


def solve_trim(
    problem: TrimProblem,
    evaluator: EvaluatorLike,
    settings: Optional[SolverSettings] = None
) -> TrimSolution:
    """
    Find the equilibrium of a compiled trim problem.

    Args:
        problem: Compiled TrimProblem
        evaluator: Object with evaluate(x, u) -> Evaluation, or the callable
                   itself
        settings: SolverSettings (defaults if None)

    Returns:
        TrimSolution with diagnostics; check `converged`

    Example:
        >>> problem = compile_trim_problem(target, 'UltraStick25e')
        >>> solution = solve_trim(problem, RigidBodyModel(ULTRASTICK25E))
        >>> solution.converged
        True
    """
    settings = settings or SolverSettings()
    if settings.method not in METHODS:
        raise ValueError(f"Unknown trim method '{settings.method}'. Available: {list(METHODS)}")

    evaluate = _evaluator_function(evaluator)
    residuals = TrimResiduals(problem, evaluate, settings.max_evaluations)

    logger.info(
        "Solving %s trim: %d free variables, %d equations (%s)",
        problem.variant, residuals.n_free, residuals.n_equations, settings.method
    )
    if residuals.n_free != residuals.n_equations:
        logger.debug("Free/equation counts differ: %d vs %d",
                     residuals.n_free, residuals.n_equations)

    iterations = 0
    messages = []
    try:
        if residuals.n_free == 0:
            residuals(residuals.initial_guess())
            messages.append('No free variables')
        else:
            nit, message = _minimize(residuals, settings)
            iterations += nit
            messages.append(message)
            if settings.polish and residuals.best_norm > settings.tolerance:
                logger.debug("%s stopped at residual %.3e, refining",
                             settings.method, residuals.best_norm)
                nit, message = _polish(residuals, settings)
                iterations += nit
                messages.append(message)
    except _BudgetExhausted:
        messages.append(f'Evaluation budget of {settings.max_evaluations} exhausted')
        logger.debug("Evaluation budget exhausted after %d iterations", iterations)

    # Final evaluation at the best point, outside the budget
    x, u = residuals.split(residuals.best_free)
    evaluation = evaluate(x, u)
    residual_norm = float(np.linalg.norm(residuals.residual_of(evaluation)))
    converged = residual_norm <= settings.tolerance

    states = _split_states(problem, x)
    outputs = {name: np.atleast_1d(np.asarray(value, dtype=float)).copy()
               for name, value in evaluation.outputs.items()}

    solution = TrimSolution(
        states=states,
        outputs=outputs,
        motor=float(u[0]),
        actuators=u[1:],
        converged=converged,
        iterations=iterations,
        n_evaluations=residuals.n_evaluations,
        residual_norm=residual_norm,
        message='; '.join(messages),
        method=settings.method,
    )

    if converged:
        logger.info("Trim converged: residual %.3e after %d iterations, %d evaluations",
                    residual_norm, iterations, residuals.n_evaluations)
    else:
        logger.warning("Trim did not converge: residual %.3e after %d iterations (%s)",
                       residual_norm, iterations, solution.message)
    return solution


def _split_states(problem: TrimProblem, x: np.ndarray) -> Dict[str, np.ndarray]:
    states = {}
    start = 0
    for block in problem.states:
        states[block.name] = x[start:start + block.size].copy()
        start += block.size
    return states
