"""
Channel drivers for ep → e'p'K⁺K⁻ reconstruction

Each channel is one ColumnGraph built by build_channel_graph(), which only
differs in which role (if any) is reconstructed from four-momentum
conservation instead of being measured:

    full            e', p', K⁺, K⁻ measured
    missing_kminus  K⁻ from beam + target − (e' + p' + K⁺)
    missing_kplus   K⁺ from beam + target − (e' + p' + K⁻)

"Exclusive K⁺" means the K⁺ is the observed kaon, so it is the
missing-K⁻ channel; "exclusive K⁻" is the missing-K⁺ channel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, Optional, Tuple

import awkward as ak
import numpy as np

from .candidates import (
    MOMENTUM_BRANCHES,
    PASS_BRANCH,
    PID_BRANCH,
    PID_ELECTRON,
    PID_KMINUS,
    PID_KPLUS,
    PID_PROTON,
    STATUS_BRANCH,
    candidate_components,
    candidate_status,
)
from .exceptions import ConfigurationError
from .graph import ColumnGraph
from .kinematics import (
    ELECTRON_MASS,
    KAON_MASS,
    PROTON_MASS,
    SENTINEL,
    detector_region,
    fill_sentinel,
    invariant_mass,
    momentum,
    phi,
    present,
    reconstruct_missing,
    theta,
)
from .observables import OBSERVABLES, TUPLE_COLUMNS, observable_columns

logger = logging.getLogger("PhiAnalysis.Channels")

RAW_COLUMNS = (PID_BRANCH, *MOMENTUM_BRANCHES, STATUS_BRANCH, PASS_BRANCH)


@dataclass(frozen=True)
class Role:
    """A final-state particle of the reaction and its column naming."""

    name: str
    rec: str
    pid: int
    mass: float

    def components(self, missing: bool = False) -> Tuple[str, str, str]:
        stem = f"{self.name}_miss" if missing else self.name
        return (f"{stem}_px", f"{stem}_py", f"{stem}_pz")

    def angles(self) -> Tuple[str, str, str]:
        return (f"{self.rec}_p", f"{self.rec}_theta", f"{self.rec}_phi")

    @property
    def region(self) -> str:
        return f"{self.name}_det_region"


ELECTRON = Role("ele", "recel", PID_ELECTRON, ELECTRON_MASS)
PROTON = Role("pro", "recpro", PID_PROTON, PROTON_MASS)
KMINUS = Role("kMinus", "reckMinus", PID_KMINUS, KAON_MASS)
KPLUS = Role("kPlus", "reckPlus", PID_KPLUS, KAON_MASS)

# Order of the kinematic tuple
ROLES = (ELECTRON, PROTON, KMINUS, KPLUS)
MISSING_ROLES = {None: None, "kMinus": KMINUS, "kPlus": KPLUS}


def _candidate_region(code: int, pid, status, passed):
    return detector_region(candidate_status(code, pid, status, passed))


def _missing_components(beam_energy: float, masses: Tuple[float, ...], *components):
    measured = [
        (*components[3 * i:3 * i + 3], mass) for i, mass in enumerate(masses)
    ]
    return reconstruct_missing(beam_energy, measured)


def _kaon_pair_mass(kpx, kpy, kpz, kmx, kmy, kmz):
    return invariant_mass((kpx, kpy, kpz, KAON_MASS), (kmx, kmy, kmz, KAON_MASS))


def _alias(values):
    return values


def missing_mass(mx2) -> ak.Array:
    """
    Square root of a missing-mass-squared column

    Non-positive (or absent) squared masses give None, which is exported
    as the sentinel, never NaN.
    """
    mx2 = ak.Array(mx2)
    positive = ak.fill_none(mx2 > 0, False)
    return np.sqrt(ak.mask(mx2, positive))


def build_channel_graph(beam_energy: float, missing_role: Optional[str] = None) -> ColumnGraph:
    """
    Build the column graph of one reconstruction hypothesis

    Args:
        beam_energy: Electron beam energy (GeV)
        missing_role: None for full detection, "kMinus" or "kPlus" for the
                      kaon reconstructed from four-momentum conservation

    Returns:
        ColumnGraph over the REC::Particle bank

    Raises:
        ConfigurationError: If missing_role is not a known role
    """
    if missing_role not in MISSING_ROLES:
        raise ConfigurationError(
            f"Unknown missing role '{missing_role}'\n"
            f"Available roles: {[r for r in MISSING_ROLES if r is not None]}"
        )
    missing = MISSING_ROLES[missing_role]
    measured = [role for role in ROLES if role is not missing]

    graph = ColumnGraph(RAW_COLUMNS)

    # 1. Measured candidates: first passing particle of each type
    for role in measured:
        graph = graph.define_many(
            role.components(),
            partial(candidate_components, role.pid),
            (PID_BRANCH, PASS_BRANCH, *MOMENTUM_BRANCHES),
        )

    if missing is None:
        graph = graph.filter(
            present,
            [role.components()[0] for role in (ELECTRON, KMINUS, KPLUS, PROTON)],
            "Cut: e⁻, K⁻, K⁺, p candidates present",
        )

    # 2. Missing candidate from beam + target − Σ measured
    if missing is not None:
        inputs = [name for role in measured for name in role.components()]
        graph = graph.define_many(
            missing.components(missing=True),
            partial(_missing_components, beam_energy, tuple(role.mass for role in measured)),
            inputs,
        )

    # 3. Momentum and angles per role
    for role in ROLES:
        px, py, pz = role.components(missing=role is missing)
        rec_p, rec_theta, rec_phi = role.angles()
        graph = (
            graph.define(rec_p, momentum, (px, py, pz))
            .define(rec_theta, theta, (px, py, pz))
            .define(rec_phi, phi, (px, py))
        )

    # 4. Detector region of every measured role
    for role in measured:
        graph = graph.define(
            role.region,
            partial(_candidate_region, role.pid),
            (PID_BRANCH, STATUS_BRANCH, PASS_BRANCH),
        )

    # 5. K⁺K⁻ invariant mass
    graph = graph.define(
        "invMass_KpKm",
        _kaon_pair_mass,
        (*KPLUS.components(missing=KPLUS is missing), *KMINUS.components(missing=KMINUS is missing)),
    )

    # 6. Observable table on the kinematic tuple
    graph = graph.define_many(
        tuple(OBSERVABLES), partial(observable_columns, beam_energy), TUPLE_COLUMNS
    )

    # 7. Missing-mass aliases for cut studies
    if missing is not None:
        for channel in ("epKm", "epKp"):
            graph = (
                graph.define(f"Mx2_{channel}_forCut", _alias, (f"Mx2_{channel}",))
                .define(f"Mx_{channel}_forCut", missing_mass, (f"Mx2_{channel}_forCut",))
            )

    return graph


def fill_sentinels(events: ak.Array, columns, sentinel: float = SENTINEL) -> ak.Array:
    """Replace absent values of the given columns by the sentinel."""
    for name in columns:
        events = ak.with_field(events, fill_sentinel(events[name], sentinel), name)
    return events


def run_channel(events: ak.Array,
                beam_energy: float,
                missing_role: Optional[str] = None,
                sentinel: Optional[float] = SENTINEL) -> ak.Array:
    """
    Reconstruct one channel on an event array

    Args:
        events: Awkward array with the REC::Particle bank
        beam_energy: Electron beam energy (GeV)
        missing_role: None, "kMinus" or "kPlus"
        sentinel: Value exported for absent entries; None keeps them as None

    Returns:
        Events with all channel columns attached
    """
    graph = build_channel_graph(beam_energy, missing_role)
    logger.info(
        f"Reconstructing {'full' if missing_role is None else 'missing ' + missing_role} "
        f"channel on {len(events)} events (E_beam = {beam_energy} GeV)"
    )
    for line in graph.describe():
        logger.debug(line)

    result = graph.evaluate(events)

    if sentinel is not None:
        defined = [name for name in graph.columns if name not in graph.source_columns]
        result = fill_sentinels(result, defined, sentinel)

    return result


def reconstruct_full(events: ak.Array, beam_energy: float,
                     sentinel: Optional[float] = SENTINEL) -> ak.Array:
    """All four final-state particles measured"""
    return run_channel(events, beam_energy, None, sentinel)


def reconstruct_missing_kminus(events: ak.Array, beam_energy: float,
                               sentinel: Optional[float] = SENTINEL) -> ak.Array:
    """K⁻ inferred from e', p', K⁺"""
    return run_channel(events, beam_energy, "kMinus", sentinel)


def reconstruct_missing_kplus(events: ak.Array, beam_energy: float,
                              sentinel: Optional[float] = SENTINEL) -> ak.Array:
    """K⁺ inferred from e', p', K⁻"""
    return run_channel(events, beam_energy, "kPlus", sentinel)


# Exclusive K⁺ == K⁻ omitted, exclusive K⁻ == K⁺ omitted
reconstruct_exclusive_kplus = reconstruct_missing_kminus
reconstruct_exclusive_kminus = reconstruct_missing_kplus


CHANNELS: Dict[str, Callable[..., ak.Array]] = {
    "full": reconstruct_full,
    "missing_kminus": reconstruct_missing_kminus,
    "missing_kplus": reconstruct_missing_kplus,
    "exclusive_kplus": reconstruct_exclusive_kplus,
    "exclusive_kminus": reconstruct_exclusive_kminus,
}


def get_channel(name: str) -> Callable[..., ak.Array]:
    """Driver registered under `name`."""
    if name not in CHANNELS:
        raise ConfigurationError(
            f"Unknown channel '{name}'\n"
            f"Available channels: {list(CHANNELS)}"
        )
    return CHANNELS[name]
