"""
Request and response correctness checks for exercises.
"""

from .checks import (
    Mismatch,
    VerificationReport,
    check_request,
    check_response,
    check_source_restriction,
    explain_request,
    explain_response,
    path_exists,
    resolve_path,
    values_equal,
)
from .descriptors import REQUIRED, DescriptorError, ExpectedResponseDescriptor, Literal, Required, SolutionDescriptor, parse_expectation

__all__ = [
    "REQUIRED",
    "DescriptorError",
    "ExpectedResponseDescriptor",
    "Literal",
    "Mismatch",
    "Required",
    "SolutionDescriptor",
    "VerificationReport",
    "check_request",
    "check_response",
    "check_source_restriction",
    "explain_request",
    "explain_response",
    "parse_expectation",
    "path_exists",
    "resolve_path",
    "values_equal",
]
