"""
Kinematic helpers and four-momentum reconstruction

Pure elementwise functions shared by every reconstruction channel:
3-momentum decomposition into (p, θ, φ), detector region classification
from the REC::Particle status word, on-shell four-vectors and the
missing four-vector from beam + target − Σ measured.

Absent candidates are carried as awkward option values (None). Four-vector
arithmetic runs on dense arrays and the absent entries are masked back in
afterwards, so an absent input always yields an absent output.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import awkward as ak
import numpy as np
import vector

# Register vector behavior for 4-momentum calculations
vector.register_awkward()

# Masses in GeV/c²
ELECTRON_MASS = 0.000511
PROTON_MASS = 0.938272
KAON_MASS = 0.493677

# Exported in place of absent values
SENTINEL = -999.0

# Detector region codes
REGION_FT = 0
REGION_FD = 1
REGION_CD = 2
REGION_UNKNOWN = -1

# |status| ranges of the detector subsystems, [low, high)
REGION_STATUS_RANGES = {
    REGION_FT: (1000, 2000),
    REGION_FD: (2000, 3000),
    REGION_CD: (4000, 5000),
}


def momentum(px, py, pz):
    """Momentum magnitude |p|."""
    return np.sqrt(px * px + py * py + pz * pz)


def theta(px, py, pz):
    """Polar angle acos(pz/|p|) in radians (NaN for a null vector)."""
    return np.arccos(pz / momentum(px, py, pz))


def phi(px, py):
    """Azimuthal angle mapped into [0, 2π)."""
    angle = np.arctan2(py, px)
    shifted = angle + 2 * np.pi * (angle < 0)
    # -ε + 2π rounds to 2π
    return shifted - 2 * np.pi * (shifted >= 2 * np.pi)


def spherical_to_cartesian(p, polar, azimuth):
    """Inverse of (momentum, theta, phi): returns (px, py, pz)."""
    sin_theta = np.sin(polar)
    return (
        p * sin_theta * np.cos(azimuth),
        p * sin_theta * np.sin(azimuth),
        p * np.cos(polar),
    )


def detector_region(status) -> ak.Array:
    """
    Classify REC::Particle status words into detector regions

    Args:
        status: Status codes (sign is ignored), None for absent candidates

    Returns:
        Region codes: 0 = FT, 1 = FD, 2 = CD, -1 = unknown or absent
    """
    abs_status = np.abs(ak.Array(status))
    region = ak.full_like(abs_status, REGION_UNKNOWN, dtype=np.int64)
    for code, (low, high) in REGION_STATUS_RANGES.items():
        region = ak.where((abs_status >= low) & (abs_status < high), code, region)
    return ak.fill_none(region, REGION_UNKNOWN)


def present(*arrays) -> ak.Array:
    """Per-event mask, True where none of the arrays is absent."""
    valid = ~ak.is_none(arrays[0])
    for array in arrays[1:]:
        valid = valid & ~ak.is_none(array)
    return valid


def _dense(array) -> ak.Array:
    return ak.fill_none(array, np.nan)


def four_vector(px, py, pz, mass: float):
    """
    Build on-shell four-vectors with E = sqrt(p² + m²)

    Args:
        px, py, pz: Dense awkward arrays of momentum components (GeV/c)
        mass: Rest mass assigned to every entry (GeV/c²)

    Returns:
        vector Momentum4D awkward array
    """
    energy = np.sqrt(px * px + py * py + pz * pz + mass * mass)
    return vector.zip({"px": px, "py": py, "pz": pz, "E": energy})


def beam_and_target(reference, beam_energy: float):
    """Beam (0, 0, E, E) and proton target at rest, shaped like `reference`."""
    zeros = ak.zeros_like(_dense(reference))
    beam = vector.zip({
        "px": zeros,
        "py": zeros,
        "pz": zeros + beam_energy,
        "E": zeros + beam_energy,
    })
    target = vector.zip({
        "px": zeros,
        "py": zeros,
        "pz": zeros,
        "E": zeros + PROTON_MASS,
    })
    return beam, target


def invariant_mass(*candidates: Tuple) -> ak.Array:
    """
    Invariant mass of a system of on-shell candidates

    Args:
        candidates: (px, py, pz, mass) tuples, components may be absent

    Returns:
        Invariant mass per event, None where any component is absent
    """
    components = [c for cand in candidates for c in cand[:3]]
    valid = present(*components)

    total = None
    for px, py, pz, mass in candidates:
        p4 = four_vector(_dense(px), _dense(py), _dense(pz), mass)
        total = p4 if total is None else total + p4

    return ak.mask(total.mass, valid)


def reconstruct_missing(beam_energy: float, measured: Sequence[Tuple]):
    """
    Missing 3-momentum from four-momentum conservation

    missing = beam + target − Σ measured, with the beam along +z and the
    proton target at rest. No fit is involved: conservation is exact.

    Args:
        beam_energy: Electron beam energy (GeV)
        measured: (px, py, pz, mass) tuples of the measured final state

    Returns:
        (px, py, pz) of the missing particle, None where any measured
        component is absent
    """
    components = [c for cand in measured for c in cand[:3]]
    valid = present(*components)

    beam, target = beam_and_target(measured[0][0], beam_energy)
    missing = beam + target
    for px, py, pz, mass in measured:
        missing = missing - four_vector(_dense(px), _dense(py), _dense(pz), mass)

    return (
        ak.mask(missing.px, valid),
        ak.mask(missing.py, valid),
        ak.mask(missing.pz, valid),
    )


def fill_sentinel(array, sentinel: float = SENTINEL) -> ak.Array:
    """Replace absent values by the sentinel."""
    return ak.fill_none(array, sentinel)
