"""
Module for applying exclusivity selections to REC::Particle events

Three independent topology predicates, evaluated on the raw particle
bank only (pid, pass flag, daughter-provenance flag). Only particles that
pass quality are counted. None of them reads derived columns.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import awkward as ak
import numpy as np

from .candidates import (
    DAUGHTER_BRANCH,
    PASS_BRANCH,
    PID_BRANCH,
    PID_ELECTRON,
    PID_KMINUS,
    PID_KPLUS,
    PID_PHOTON,
    PID_PROTON,
    count_passing,
)
from .exceptions import BranchMissingError, ConfigurationError

# "ignore": provenance term always true, "any_kaon": ≥1 passing kaon flagged as φ daughter
PHI_DAUGHTER_POLICIES = ("ignore", "any_kaon")


def _require(events: ak.Array, branches: Iterable[str]) -> None:
    for branch in branches:
        if branch not in events.fields:
            raise BranchMissingError(branch)


def check_phi_daughter_policy(policy: str) -> str:
    if policy not in PHI_DAUGHTER_POLICIES:
        raise ConfigurationError(
            f"Unknown phi_daughter_policy '{policy}'\n"
            f"Available policies: {list(PHI_DAUGHTER_POLICIES)}"
        )
    return policy


def phi_daughter_term(events: ak.Array, policy: str = "ignore") -> ak.Array:
    """Provenance part of the φ-event selection under the given policy."""
    check_phi_daughter_policy(policy)

    if policy == "ignore":
        return ak.Array(np.ones(len(events), dtype=bool))

    pid = events[PID_BRANCH]
    kaon = (pid == PID_KPLUS) | (pid == PID_KMINUS)
    return ak.any(kaon & events[PASS_BRANCH] & events[DAUGHTER_BRANCH], axis=1)


def exclusive_phi_mask(events: ak.Array, phi_daughter_policy: str = "ignore") -> ak.Array:
    """
    φ-event isolation: exactly 1 e⁻, ≥1 K⁺, ≥1 K⁻, ≥1 p

    Args:
        events: Awkward array with the REC::Particle bank
        phi_daughter_policy: How the kaon provenance flag is used

    Returns:
        Per-event boolean mask
    """
    check_phi_daughter_policy(phi_daughter_policy)
    _require(events, (PID_BRANCH, PASS_BRANCH, DAUGHTER_BRANCH))

    pid = events[PID_BRANCH]
    passed = events[PASS_BRANCH]

    topology = (
        (count_passing(pid, passed, PID_ELECTRON) == 1)
        & (count_passing(pid, passed, PID_KPLUS) >= 1)
        & (count_passing(pid, passed, PID_KMINUS) >= 1)
        & (count_passing(pid, passed, PID_PROTON) >= 1)
    )
    return topology & phi_daughter_term(events, phi_daughter_policy)


def missing_kminus_mask(events: ak.Array) -> ak.Array:
    """Missing-K⁻ admissibility: exactly 1 e⁻, ≥1 K⁺, ≥1 p (K⁻ not required)."""
    _require(events, (PID_BRANCH, PASS_BRANCH))

    pid = events[PID_BRANCH]
    passed = events[PASS_BRANCH]

    return (
        (count_passing(pid, passed, PID_ELECTRON) == 1)
        & (count_passing(pid, passed, PID_KPLUS) >= 1)
        & (count_passing(pid, passed, PID_PROTON) >= 1)
    )


def pi0_veto_mask(events: ak.Array) -> ak.Array:
    """
    π⁰ two-photon veto

    An event is rejected if any passing particle carries the daughter flag
    (paired into a π⁰). Otherwise it is kept only for exactly 1 e⁻, 1 γ, 1 p.
    """
    _require(events, (PID_BRANCH, PASS_BRANCH, DAUGHTER_BRANCH))

    pid = events[PID_BRANCH]
    passed = events[PASS_BRANCH]

    flagged = ak.any(passed & events[DAUGHTER_BRANCH], axis=1)
    topology = (
        (count_passing(pid, passed, PID_ELECTRON) == 1)
        & (count_passing(pid, passed, PID_PHOTON) == 1)
        & (count_passing(pid, passed, PID_PROTON) == 1)
    )
    return ~flagged & topology


class EventSelector:
    """Class for narrowing event arrays with the exclusivity predicates"""

    # Selection names accepted by apply()
    SELECTIONS = ("exclusive_phi", "missing_kminus", "pi0_veto")

    def __init__(self, phi_daughter_policy: str = "ignore"):
        """
        Initialize the event selector

        Parameters:
        - phi_daughter_policy: Provenance policy of the φ-event selection
        """
        self.logger = logging.getLogger("PhiAnalysis.EventSelector")
        self.phi_daughter_policy = check_phi_daughter_policy(phi_daughter_policy)

    @classmethod
    def from_config(cls, config) -> EventSelector:
        """Build from the [phi_event] table of selection.toml."""
        return cls(config.get_phi_daughter_policy())

    def _narrow(self, events: ak.Array, mask: ak.Array, label: str) -> ak.Array:
        selected = events[mask]
        n_before = len(events)
        n_after = len(selected)
        fraction = 100 * n_after / n_before if n_before > 0 else 0.0
        self.logger.info(f"{label}: {n_before} → {n_after} ({fraction:.1f}%)")
        return selected

    def select_exclusive_phi_events(self, events: ak.Array) -> ak.Array:
        """Keep events with 1 e⁻, ≥1 K⁺, ≥1 K⁻, ≥1 p"""
        mask = exclusive_phi_mask(events, self.phi_daughter_policy)
        return self._narrow(events, mask, "Cut: 1 e⁻, ≥1 K⁺, ≥1 K⁻, ≥1 p")

    def select_phi_events_missing_kminus(self, events: ak.Array) -> ak.Array:
        """Keep events admissible for the missing-K⁻ reconstruction"""
        return self._narrow(events, missing_kminus_mask(events),
                            "Cut: 1 e⁻, ≥1 K⁺, ≥1 p (missing K⁻)")

    def reject_pi0_two_photon(self, events: ak.Array) -> ak.Array:
        """Drop π⁰-flagged events, keep 1 e⁻ + 1 γ + 1 p"""
        return self._narrow(events, pi0_veto_mask(events),
                            "Cut: one good e⁻, γ (not π⁰-like), p")

    def apply(self, events: ak.Array, selections: Optional[Iterable[str]] = None) -> ak.Array:
        """
        Apply named selections in order

        Parameters:
        - events: Awkward array with the REC::Particle bank
        - selections: Names from SELECTIONS (none applied if None)

        Returns:
        - Narrowed awkward array
        """
        steps = {
            "exclusive_phi": self.select_exclusive_phi_events,
            "missing_kminus": self.select_phi_events_missing_kminus,
            "pi0_veto": self.reject_pi0_two_photon,
        }
        for name in selections or ():
            if name not in steps:
                raise ConfigurationError(
                    f"Unknown selection '{name}'\n"
                    f"Available selections: {list(self.SELECTIONS)}"
                )
            events = steps[name](events)
        return events
