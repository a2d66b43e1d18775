"""
Particle candidate selection from the REC::Particle bank

For a given particle-type code, the first particle in array order that
passes quality is the candidate. There is no best-candidate scoring: with
two passing K⁺ in one event, the lower index wins.
"""

from __future__ import annotations

from typing import Tuple

import awkward as ak
import numpy as np

# PDG codes used by the analysis
PID_ELECTRON = 11
PID_PROTON = 2212
PID_KPLUS = 321
PID_KMINUS = -321
PID_PHOTON = 22

PID_BRANCH = "REC_Particle_pid"
PASS_BRANCH = "REC_Particle_pass"
STATUS_BRANCH = "REC_Particle_status"
DAUGHTER_BRANCH = "REC_DaughterParticle_pass"
MOMENTUM_BRANCHES = ("REC_Particle_px", "REC_Particle_py", "REC_Particle_pz")


def passing_mask(pid, passed, code: int) -> ak.Array:
    """Per-particle mask of quality-passing particles of one type."""
    return (pid == code) & passed


def first_match(values, pid, passed, code: int) -> ak.Array:
    """Value of the first passing particle of type `code`, None if there is none."""
    return ak.firsts(values[passing_mask(pid, passed, code)], axis=1)


def candidate_components(code: int, pid, passed, px, py, pz) -> Tuple[ak.Array, ak.Array, ak.Array]:
    """Column-level first match: (px, py, pz) as float64, None where absent."""
    return tuple(
        ak.values_astype(first_match(values, pid, passed, code), np.float64)
        for values in (px, py, pz)
    )


def candidate_status(code: int, pid, status, passed) -> ak.Array:
    """Column-level first match of the status word."""
    return first_match(status, pid, passed, code)


def select_candidate(events: ak.Array, code: int) -> Tuple[ak.Array, ak.Array, ak.Array]:
    """
    Momentum components of the first passing particle of a given type

    Args:
        events: Awkward array with REC_Particle_* branches
        code: PDG particle-type code

    Returns:
        (px, py, pz) per event, None in events without a passing particle
    """
    return candidate_components(
        code,
        events[PID_BRANCH],
        events[PASS_BRANCH],
        *(events[branch] for branch in MOMENTUM_BRANCHES),
    )


def select_status(events: ak.Array, code: int) -> ak.Array:
    """Status word of the same particle `select_candidate` picks."""
    return candidate_status(code, events[PID_BRANCH], events[STATUS_BRANCH], events[PASS_BRANCH])


def count_passing(pid, passed, code: int) -> ak.Array:
    """Number of quality-passing particles of one type in each event."""
    return ak.sum(passing_mask(pid, passed, code), axis=1)
