"""
Utility functions for extent-automation-kit
"""

from .TestKitHelper import (
    load_test_data,
    get_env,
    build_test_result,
    aggregate_test_results,
    flatten_results,
)

__all__ = [
    "load_test_data",
    "get_env",
    "build_test_result",
    "aggregate_test_results",
    "flatten_results",
]
