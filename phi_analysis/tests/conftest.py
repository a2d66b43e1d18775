"""
Global pytest fixtures and configuration for the test suite.

Provides reusable fixtures for testing pipeline components without
duplicating setup code across test modules.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import awkward as ak
import pytest
import tomli_w

from .utils.mock_data_generator import build_events, generate_mock_events, particle

BEAM_ENERGY = 10.6


@pytest.fixture
def tmp_test_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test operations.

    Automatically cleaned up after test completion.

    Yields:
        Path to temporary directory
    """
    tmp_dir = Path(tempfile.mkdtemp(prefix="phi_analysis_test_"))
    try:
        yield tmp_dir
    finally:
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir)


@pytest.fixture
def tmp_output_dir(tmp_test_dir: Path) -> Path:
    """Create a temporary output directory."""
    output_dir = tmp_test_dir / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def beam_energy() -> float:
    return BEAM_ENERGY


@pytest.fixture
def sample_config_dict(tmp_test_dir: Path) -> Dict[str, Dict[str, Any]]:
    """
    Provide minimal valid contents of every configuration file.

    Returns:
        Mapping of file name to TOML content
    """
    return {
        "reconstruction.toml": {
            "beam": {"energy": BEAM_ENERGY},
            "output": {"fill_sentinels": True, "sentinel": -999.0},
        },
        "selection.toml": {
            "phi_event": {"phi_daughter_policy": "ignore"},
            "pipeline": {
                "full": ["exclusive_phi"],
                "missing_kminus": ["missing_kminus"],
                "missing_kplus": [],
            },
        },
        "data.toml": {
            "input": {"tree_name": "events", "files": [], "step_size": "10 MB"},
            "output": {"base_path": str(tmp_test_dir / "output"), "tree_name": "kinematics"},
        },
    }


@pytest.fixture
def config_dir_fixture(tmp_test_dir: Path, sample_config_dict: Dict[str, Dict[str, Any]]) -> Path:
    """
    Create a temporary config directory with sample TOML files.

    Args:
        tmp_test_dir: Temporary test directory
        sample_config_dict: File name to TOML content

    Returns:
        Path to config directory
    """
    config_dir = tmp_test_dir / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    for filename, content in sample_config_dict.items():
        with open(config_dir / filename, 'wb') as f:
            tomli_w.dump(content, f)

    return config_dir


@pytest.fixture
def phi_event() -> list:
    """e⁻, K⁺, K⁻, p, all passing, no daughter flags."""
    return [
        particle(11, 0.3, 0.1, 4.5, status=2100),
        particle(321, -0.4, 0.2, 2.0, status=2300),
        particle(-321, 0.1, -0.5, 1.8, status=-2100),
        particle(2212, 0.2, 0.3, 0.9, status=4100),
    ]


@pytest.fixture
def sample_events(phi_event: list) -> ak.Array:
    """
    Five hand-built events:

    0. e⁻ K⁺ K⁻ p
    1. e⁻ K⁺ p (K⁻ absent)
    2. e⁻ K⁻ p (K⁺ absent)
    3. K⁺ K⁻ p (no electron)
    4. empty event
    """
    electron, k_plus, k_minus, proton = phi_event
    return build_events([
        phi_event,
        [electron, k_plus, proton],
        [electron, k_minus, proton],
        [k_plus, k_minus, proton],
        [],
    ])


@pytest.fixture
def mock_events() -> ak.Array:
    """Random REC::Particle events."""
    return generate_mock_events(n_events=200, seed=42)


def pytest_configure(config: pytest.Config) -> None:
    """
    Configure pytest with custom markers and settings.

    Args:
        config: pytest configuration object
    """
    config.addinivalue_line("markers", "unit: Fast tests of a single component")
    config.addinivalue_line("markers", "integration: Tests running several components together")
    config.addinivalue_line("markers", "config: Tests of configuration loading")
