# Trim problem compiler and equilibrium solver
import logging

from trim.errors import (
    ModelLoadError,
    TrimError,
    TrimNotConvergedError,
    TrimSpecificationError,
    UnknownTargetFieldError,
    UnknownVariantError,
)
from trim.problem import Output, TrimBundle, TrimProblem, TrimSolution, VariableSpec
from trim.target import normalize_target
from trim.variants import available_variants, get_variant
from trim.compiler import compile_trim_problem
from trim.solver import solve_trim
from trim.materialize import materialize
from trim.model_handle import ModelRegistry, acquire_model
from trim.persistence import load_trim, save_trim

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "TrimError",
    "TrimSpecificationError",
    "UnknownTargetFieldError",
    "UnknownVariantError",
    "ModelLoadError",
    "TrimNotConvergedError",
    "Output",
    "VariableSpec",
    "TrimProblem",
    "TrimSolution",
    "TrimBundle",
    "normalize_target",
    "get_variant",
    "available_variants",
    "compile_trim_problem",
    "solve_trim",
    "materialize",
    "ModelRegistry",
    "acquire_model",
    "save_trim",
    "load_trim",
]
