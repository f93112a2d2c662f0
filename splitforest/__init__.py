"""Relabeling strategies, splitting rules and sampling for growing generalized random forest trees."""

__version__ = "0.1.0"

__all__ = [
    "base",
    "relabeling",
    "sampling",
    "regression",
    "probability",
    "instrumental",
    "survival",
]