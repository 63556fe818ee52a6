# exam_core/__init__.py

"""
Core module for the exam blueprint toolkit

Includes:
- TOS matrix calculator (topics x Bloom levels x difficulty, exact sums)
- Greedy constraint-based test assembly and simpler assembly strategies
- Question bank sufficiency check against a TOS
- Seeded parallel forms with answer keys
- Test length optimizer and version distribution

Commonly used exports:
    calculate_tos, validate_tos_matrix, constraints_from_tos
    assemble, generate_parallel_forms, optimize_test_length
    Question, Constraint, ConstraintType, ValidationError
"""

# Schema models
from .schema import (
    BLOOM_LEVELS,
    DIFFICULTY_LEVELS,
    AssemblyResult,
    Constraint,
    ConstraintType,
    Question,
    TestVersion,
    TOSHeader,
    TOSMatrix,
    TopicAllocation,
    ValidationError,
    constraint_from_record,
    question_from_record,
)

# Largest-remainder rounding
from .allocation import split_counts

# TOS calculator
from .tos_calculator import (
    calculate_tos,
    constraints_from_tos,
    tos_from_dict,
    tos_to_dict,
    validate_tos_matrix,
)
from .sufficiency import analyze_sufficiency

# Test assembly
from .assembly_engine import assemble, balance_recommendations
from .assembly_strategies import apply_strategy
from .parallel_forms import generate_parallel_forms, regenerate_version, validate_equivalence
from .length_optimizer import optimize_test_length
from .distribution import assign_versions

# Settings
from .config import Settings, configure_logging, load_settings


__all__ = [
    # Schema
    "BLOOM_LEVELS",
    "DIFFICULTY_LEVELS",
    "AssemblyResult",
    "Constraint",
    "ConstraintType",
    "Question",
    "TestVersion",
    "TOSHeader",
    "TOSMatrix",
    "TopicAllocation",
    "ValidationError",
    "constraint_from_record",
    "question_from_record",

    # Allocation
    "split_counts",

    # TOS
    "calculate_tos",
    "constraints_from_tos",
    "tos_from_dict",
    "tos_to_dict",
    "validate_tos_matrix",
    "analyze_sufficiency",

    # Assembly
    "assemble",
    "balance_recommendations",
    "apply_strategy",
    "generate_parallel_forms",
    "regenerate_version",
    "validate_equivalence",
    "optimize_test_length",
    "assign_versions",

    # Settings
    "Settings",
    "configure_logging",
    "load_settings",
]
