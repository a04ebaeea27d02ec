"""
Trim Error Hierarchy

TrimError
 ├── TrimSpecificationError (also ValueError)   bad request, raised pre-solve
 │    ├── UnknownTargetFieldError               unrecognised target names
 │    └── UnknownVariantError                   unrecognised airframe tag
 ├── ModelLoadError (also RuntimeError)         evaluator model unavailable
 └── TrimNotConvergedError                      strict mode only
"""

from typing import Iterable, Sequence


class TrimError(Exception):
    """Base class for all trim failures."""


class TrimSpecificationError(TrimError, ValueError):
    """The trim request cannot be compiled as given."""


class UnknownTargetFieldError(TrimSpecificationError):
    """One or more target names are not recognised for the airframe."""

    def __init__(self, fields: Iterable[str], variant: str):
        self.fields = sorted(fields)
        self.variant = variant
        super().__init__(
            f"Unknown fields in trim target for {variant}: {', '.join(self.fields)}"
        )


class UnknownVariantError(TrimSpecificationError):
    """Airframe tag is not one of the supported variants."""

    def __init__(self, tag: str, available: Sequence[str]):
        self.tag = tag
        self.available = list(available)
        super().__init__(
            f"Unknown airframe variant '{tag}'. Available: {self.available}"
        )


class ModelLoadError(TrimError, RuntimeError):
    """The simulation model backing the evaluator could not be loaded."""


class TrimNotConvergedError(TrimError):
    """Raised in strict mode when the solver did not reach tolerance."""

    def __init__(self, solution):
        self.solution = solution
        super().__init__(
            f"Trim did not converge: residual norm {solution.residual_norm:.3e} "
            f"after {solution.iterations} iterations ({solution.message})"
        )
