"""
Test utilities and helper functions.

Provides synthetic REC::Particle events, mock ROOT files and array
comparison helpers shared across the test suite.
"""

from .mock_data_generator import (
    build_events,
    create_mock_root_file,
    generate_mock_events,
    particle,
)
from .test_helpers import (
    assert_arrays_close,
    assert_file_exists,
    assert_sentinel,
)

__all__ = [
    "assert_arrays_close",
    "assert_file_exists",
    "assert_sentinel",
    "build_events",
    "create_mock_root_file",
    "generate_mock_events",
    "particle",
]
