"""
Logging and Warning Configuration Utilities

Centralized control over warning messages and progress bars for the
reconstruction pipeline.

Usage:
    from phi_analysis.utils.logging_config import suppress_warnings
    suppress_warnings()  # Suppress all warnings by default

    suppress_warnings(level='error')  # Only show errors
    suppress_warnings(level='default')  # Show warnings, filter library noise

    # Via environment variable:
    export ANALYSIS_WARNINGS=on  # Show warnings
    export ANALYSIS_WARNINGS=off  # Suppress warnings
"""

import os
import warnings
from typing import Literal

import numpy as np


def suppress_warnings(level: Literal["off", "error", "default", "all"] = "off") -> None:
    """
    Configure warning levels for the reconstruction.

    Args:
        level: Warning level to set
            - 'off': Suppress all warnings
            - 'error': Turn warnings into errors
            - 'default': Show warnings but filter common library noise
            - 'all': Show everything, including NumPy floating-point warnings

    Environment variable ANALYSIS_WARNINGS overrides the level parameter.
    """
    env_level = os.environ.get("ANALYSIS_WARNINGS", "").lower()
    if env_level in ["on", "yes", "true", "1"]:
        level = "all"
    elif env_level in ["off", "no", "false", "0"]:
        level = "off"
    elif env_level in ["error", "default"]:
        level = env_level

    if level == "off":
        warnings.filterwarnings("ignore")
        # arccos/sqrt of null or unphysical candidates
        np.seterr(all="ignore")

    elif level == "error":
        warnings.filterwarnings("error")
        warnings.filterwarnings("ignore", category=DeprecationWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)

    elif level == "default":
        warnings.filterwarnings("default")
        warnings.filterwarnings("ignore", category=DeprecationWarning)
        warnings.filterwarnings("ignore", message=".*uproot.*")
        warnings.filterwarnings("ignore", message=".*awkward.*")

    elif level == "all":
        warnings.filterwarnings("default")
        np.seterr(all="warn")

    _suppress_library_warnings(level)


def _suppress_library_warnings(level: str) -> None:
    """Suppress known noisy warnings from specific libraries."""
    if level in ["off", "error", "default"]:
        warnings.filterwarnings("ignore", module="awkward.*")
        warnings.filterwarnings("ignore", module="vector.*")


def enable_progress_bars() -> bool:
    """
    Check if progress bars should be enabled.

    Controlled via the ANALYSIS_PROGRESS environment variable.
    """
    env_progress = os.environ.get("ANALYSIS_PROGRESS", "on").lower()
    return env_progress in ["on", "yes", "true", "1"]


def get_tqdm_kwargs(desc: str = "", **kwargs) -> dict:
    """
    Get standard kwargs for tqdm progress bars with consistent styling.

    Args:
        desc: Description for the progress bar
        **kwargs: Additional tqdm parameters

    Returns:
        Dictionary of tqdm parameters
    """
    default_kwargs = {
        "desc": desc,
        "unit": "it",
        "ncols": 80,
        "bar_format": "{l_bar}{bar}| {n_fmt} [{elapsed}]",
        "disable": not enable_progress_bars(),
    }
    default_kwargs.update(kwargs)
    return default_kwargs
