"""
Configuration and ROOT I/O for the φ → K⁺K⁻ reconstruction

TOMLConfig reads the TOML configuration directory; DataManager reads the
REC::Particle bank from ROOT trees into awkward arrays and writes the
reconstructed per-event columns back out.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

import awkward as ak
import numpy as np
import tomli
import uproot
from tqdm import tqdm

from ..utils.logging_config import get_tqdm_kwargs
from .candidates import DAUGHTER_BRANCH
from .channels import RAW_COLUMNS
from .event_selection import check_phi_daughter_policy
from .exceptions import BranchMissingError, ConfigurationError, DataLoadError

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

# Branches read from the input trees
REQUIRED_BRANCHES = (*RAW_COLUMNS, DAUGHTER_BRANCH)


class TOMLConfig:
    """
    Load and manage the TOML configuration files

    - reconstruction.toml: beam energy and sentinel export
    - selection.toml: φ-daughter policy and per-channel selections
    - data.toml: input trees and output location
    """

    REQUIRED_FILES = ("reconstruction.toml", "selection.toml", "data.toml")

    def __init__(self, config_dir: str = str(DEFAULT_CONFIG_DIR)):
        self.config_dir = Path(config_dir)

        self.reconstruction = self._load_toml("reconstruction.toml")
        self.selection = self._load_toml("selection.toml")
        self.data = self._load_toml("data.toml")

    def _load_toml(self, filename: str) -> dict:
        """
        Load TOML configuration file with proper error handling

        Args:
            filename: Name of the TOML file to load

        Returns:
            dict: Parsed TOML configuration

        Raises:
            ConfigurationError: If file not found or parsing fails
        """
        config_path = self.config_dir / filename
        try:
            with open(config_path, 'rb') as f:
                return tomli.load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Configuration file not found: {config_path}\n"
                f"Please ensure all config files are present in {self.config_dir}"
            )
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Error parsing TOML file {config_path}: {e}"
            )

    @staticmethod
    def _section(table: dict, name: str, filename: str) -> dict:
        if name not in table:
            raise ConfigurationError(f"Missing [{name}] section in {filename}")
        return table[name]

    def get_beam_energy(self) -> float:
        """Electron beam energy (GeV)"""
        beam = self._section(self.reconstruction, "beam", "reconstruction.toml")
        if "energy" not in beam:
            raise ConfigurationError("Missing 'energy' in [beam] of reconstruction.toml")
        energy = float(beam["energy"])
        if energy <= 0:
            raise ConfigurationError(f"Beam energy must be positive, got {energy}")
        return energy

    def get_sentinel(self) -> Optional[float]:
        """Value exported for absent entries, None if sentinels are disabled"""
        output = self.reconstruction.get("output", {})
        if not output.get("fill_sentinels", True):
            return None
        return float(output.get("sentinel", -999.0))

    def get_phi_daughter_policy(self) -> str:
        """Provenance policy of the φ-event selection"""
        phi_event = self.selection.get("phi_event", {})
        return check_phi_daughter_policy(phi_event.get("phi_daughter_policy", "ignore"))

    def get_pipeline_selections(self, channel: str) -> List[str]:
        """Selections applied before reconstructing `channel`"""
        return list(self.selection.get("pipeline", {}).get(channel, []))

    def get_tree_name(self) -> str:
        return self._section(self.data, "input", "data.toml").get("tree_name", "events")

    def get_step_size(self) -> str:
        return str(self._section(self.data, "input", "data.toml").get("step_size", "100 MB"))

    def get_input_files(self) -> List[str]:
        return list(self._section(self.data, "input", "data.toml").get("files", []))

    def get_output_path(self) -> Path:
        output = self._section(self.data, "output", "data.toml")
        return Path(output.get("base_path", "output"))

    def get_output_tree_name(self) -> str:
        return self._section(self.data, "output", "data.toml").get("tree_name", "kinematics")


class DataManager:
    """Load and write ROOT files with uproot"""

    def __init__(self, config: TOMLConfig):
        self.config = config
        self.tree_name = config.get_tree_name()
        self.logger = logging.getLogger("PhiAnalysis.DataManager")

    def load_events(self, filepath: str, tree_name: Optional[str] = None) -> ak.Array:
        """
        Load the REC::Particle bank of one ROOT tree

        Args:
            filepath: Path to the ROOT file
            tree_name: Tree to read (default from data.toml)

        Returns:
            Awkward array with REQUIRED_BRANCHES

        Raises:
            DataLoadError: If the file or tree cannot be read
            BranchMissingError: If a required branch is absent
        """
        filepath = Path(filepath)
        tree_name = tree_name or self.tree_name

        if not filepath.exists():
            raise DataLoadError(
                f"Data file not found: {filepath}\n"
                f"Please check the [input] files in data.toml"
            )

        try:
            with uproot.open(filepath) as file:
                if tree_name not in file:
                    available = list(file.keys())
                    raise DataLoadError(
                        f"Tree '{tree_name}' not found in {filepath}\n"
                        f"Available objects: {available}"
                    )

                tree = file[tree_name]
                available_branches = set(tree.keys())
                for branch in REQUIRED_BRANCHES:
                    if branch not in available_branches:
                        raise BranchMissingError(branch, str(filepath))

                events = tree.arrays(list(REQUIRED_BRANCHES), library="ak")

        except (OSError, IOError) as e:
            raise DataLoadError(
                f"Error reading ROOT file {filepath}: {e}"
            )

        self.logger.info(f"Loaded {filepath.name}: {len(events)} events")
        return events

    def iterate_events(self, filepaths: Iterable[str],
                       step_size: Optional[str] = None) -> Iterator[ak.Array]:
        """
        Stream the REC::Particle bank in chunks

        Chunks are independent, so each one can be reconstructed on its own
        and the results concatenated.
        """
        files: Dict[str, str] = {}
        for path in filepaths:
            if not Path(path).exists():
                raise DataLoadError(f"Data file not found: {path}")
            files[str(path)] = self.tree_name

        step_size = step_size or self.config.get_step_size()
        chunks = uproot.iterate(
            files, expressions=list(REQUIRED_BRANCHES), step_size=step_size, library="ak"
        )
        for chunk in tqdm(chunks, **get_tqdm_kwargs("Reading chunks", unit="chunk")):
            yield chunk

    def write_events(self, events: ak.Array, filepath: str,
                     tree_name: Optional[str] = None) -> Path:
        """
        Write the one-value-per-event columns to a new ROOT file

        Per-particle (jagged) input branches are not written back.
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        tree_name = tree_name or self.config.get_output_tree_name()

        columns = {
            name: ak.fill_none(events[name], np.nan)
            for name in events.fields
            if events[name].ndim == 1
        }

        with uproot.recreate(filepath) as file:
            file[tree_name] = columns

        self.logger.info(f"Wrote {len(events)} events ({len(columns)} columns) to {filepath}")
        return filepath
