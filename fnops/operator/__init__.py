"""Operator package.

This package contains the operator that reconciles a desired set of objects
against a resource store, including orphan pruning for owned kinds.
"""

from .operator import (
    Operator,
    ApplyOptions,
    DeleteOptions,
    new_operator,
    new_function_operator,
    new_triggers_operator,
    new_api_rules_operator,
)

__all__ = [
    "Operator",
    "ApplyOptions",
    "DeleteOptions",
    "new_operator",
    "new_function_operator",
    "new_triggers_operator",
    "new_api_rules_operator",
]
