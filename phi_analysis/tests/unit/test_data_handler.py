"""
Unit tests for data_handler module.

Tests TOMLConfig loading and accessors, and DataManager error handling
without real data files.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import tomli_w

from phi_analysis.modules.data_handler import (
    DEFAULT_CONFIG_DIR,
    REQUIRED_BRANCHES,
    DataManager,
    TOMLConfig,
)
from phi_analysis.modules.exceptions import ConfigurationError, DataLoadError


def rewrite(config_dir: Path, filename: str, content: dict) -> None:
    with open(config_dir / filename, 'wb') as f:
        tomli_w.dump(content, f)


@pytest.mark.unit
@pytest.mark.config
class TestTOMLConfigInitialization:
    """Test TOMLConfig initialization and file loading."""

    def test_init_with_valid_config_dir(self, config_dir_fixture: Path) -> None:
        config = TOMLConfig(str(config_dir_fixture))

        assert hasattr(config, 'reconstruction')
        assert hasattr(config, 'selection')
        assert hasattr(config, 'data')

    def test_default_config_dir(self) -> None:
        """The shipped configuration loads."""
        config = TOMLConfig()

        assert config.config_dir == DEFAULT_CONFIG_DIR
        assert config.get_beam_energy() > 0
        assert config.get_phi_daughter_policy() == "ignore"

    def test_missing_config_directory(self, tmp_test_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            TOMLConfig(str(tmp_test_dir / "nonexistent_config"))

    def test_missing_single_file(self, config_dir_fixture: Path) -> None:
        (config_dir_fixture / "data.toml").unlink()
        with pytest.raises(ConfigurationError, match="data.toml"):
            TOMLConfig(str(config_dir_fixture))

    def test_invalid_toml(self, config_dir_fixture: Path) -> None:
        (config_dir_fixture / "selection.toml").write_text("[phi_event\npolicy = ")
        with pytest.raises(ConfigurationError, match="Error parsing"):
            TOMLConfig(str(config_dir_fixture))


@pytest.mark.unit
@pytest.mark.config
class TestTOMLConfigAccessors:
    """Test typed accessors."""

    def test_beam_energy(self, config_dir_fixture: Path) -> None:
        assert TOMLConfig(str(config_dir_fixture)).get_beam_energy() == pytest.approx(10.6)

    def test_missing_beam_section(self, config_dir_fixture: Path) -> None:
        rewrite(config_dir_fixture, "reconstruction.toml", {"output": {}})
        with pytest.raises(ConfigurationError, match=r"\[beam\]"):
            TOMLConfig(str(config_dir_fixture)).get_beam_energy()

    def test_non_positive_beam_energy(self, config_dir_fixture: Path) -> None:
        rewrite(config_dir_fixture, "reconstruction.toml", {"beam": {"energy": 0.0}})
        with pytest.raises(ConfigurationError, match="positive"):
            TOMLConfig(str(config_dir_fixture)).get_beam_energy()

    def test_sentinel(self, config_dir_fixture: Path) -> None:
        assert TOMLConfig(str(config_dir_fixture)).get_sentinel() == -999.0

    def test_sentinels_disabled(self, config_dir_fixture: Path) -> None:
        rewrite(config_dir_fixture, "reconstruction.toml",
                {"beam": {"energy": 10.6}, "output": {"fill_sentinels": False}})
        assert TOMLConfig(str(config_dir_fixture)).get_sentinel() is None

    def test_unknown_policy(self, config_dir_fixture: Path) -> None:
        rewrite(config_dir_fixture, "selection.toml", {"phi_event": {"phi_daughter_policy": "all"}})
        with pytest.raises(ConfigurationError, match="phi_daughter_policy"):
            TOMLConfig(str(config_dir_fixture)).get_phi_daughter_policy()

    def test_policy_defaults_to_ignore(self, config_dir_fixture: Path) -> None:
        rewrite(config_dir_fixture, "selection.toml", {})
        assert TOMLConfig(str(config_dir_fixture)).get_phi_daughter_policy() == "ignore"

    def test_pipeline_selections(self, config_dir_fixture: Path) -> None:
        config = TOMLConfig(str(config_dir_fixture))

        assert config.get_pipeline_selections("full") == ["exclusive_phi"]
        assert config.get_pipeline_selections("missing_kplus") == []
        assert config.get_pipeline_selections("exclusive_kminus") == []

    def test_data_settings(self, config_dir_fixture: Path, tmp_test_dir: Path) -> None:
        config = TOMLConfig(str(config_dir_fixture))

        assert config.get_tree_name() == "events"
        assert config.get_step_size() == "10 MB"
        assert config.get_input_files() == []
        assert config.get_output_path() == tmp_test_dir / "output"
        assert config.get_output_tree_name() == "kinematics"

    def test_missing_input_section(self, config_dir_fixture: Path) -> None:
        rewrite(config_dir_fixture, "data.toml", {"output": {}})
        with pytest.raises(ConfigurationError, match=r"\[input\]"):
            TOMLConfig(str(config_dir_fixture)).get_tree_name()


@pytest.mark.unit
class TestDataManager:
    """Test DataManager error handling."""

    def test_required_branches(self) -> None:
        assert set(REQUIRED_BRANCHES) == {
            "REC_Particle_pid", "REC_Particle_px", "REC_Particle_py", "REC_Particle_pz",
            "REC_Particle_status", "REC_Particle_pass", "REC_DaughterParticle_pass",
        }

    def test_missing_file(self, config_dir_fixture: Path, tmp_test_dir: Path) -> None:
        manager = DataManager(TOMLConfig(str(config_dir_fixture)))
        with pytest.raises(DataLoadError, match="not found"):
            manager.load_events(str(tmp_test_dir / "missing.root"))

    def test_iterate_missing_file(self, config_dir_fixture: Path, tmp_test_dir: Path) -> None:
        manager = DataManager(TOMLConfig(str(config_dir_fixture)))
        with pytest.raises(DataLoadError):
            list(manager.iterate_events([str(tmp_test_dir / "missing.root")]))
