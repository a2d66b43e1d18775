"""
Invariant kinematics of ep → e'p'K⁺K⁻ from a fixed kinematic tuple

Every observable is a pure function of a KinematicTuple (beam energy plus
p/θ/φ of the electron, proton, K⁻ and K⁺). The OBSERVABLES table maps each
observable name to its function and is built once at import; channel
graphs evaluate it as a single stage.

Conventions:
- Energies, momenta in GeV, squared masses in GeV².
- "t" is reported as −(P − p')², i.e. positive |t|.
- "phi" is the Trento angle between the lepton and the K⁺K⁻ hadron
  plane, in degrees within [0, 360).
- Angular separations (DeltaPhi, Theta_*) are in degrees.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from functools import cached_property
from typing import Callable, Dict, Iterable, Optional

import awkward as ak
import numpy as np
import vector

from .kinematics import (
    ELECTRON_MASS,
    KAON_MASS,
    PROTON_MASS,
    beam_and_target,
    four_vector,
    present,
    spherical_to_cartesian,
)

# Column names feeding the tuple, in tuple order
TUPLE_COLUMNS = (
    "recel_p", "recel_theta", "recel_phi",
    "recpro_p", "recpro_theta", "recpro_phi",
    "reckMinus_p", "reckMinus_theta", "reckMinus_phi",
    "reckPlus_p", "reckPlus_theta", "reckPlus_phi",
)


def _spatial(p4):
    return vector.zip({"px": p4.px, "py": p4.py, "pz": p4.pz})


@dataclass(frozen=True)
class KinematicTuple:
    """
    Beam energy and (p, θ, φ) of the four final-state particles

    The four-vectors are derived lazily and cached; the tuple itself is
    never modified. Components may be absent (None); `valid` marks events
    where all twelve are present.
    """

    beam_energy: float
    el_p: ak.Array
    el_theta: ak.Array
    el_phi: ak.Array
    pro_p: ak.Array
    pro_theta: ak.Array
    pro_phi: ak.Array
    km_p: ak.Array
    km_theta: ak.Array
    km_phi: ak.Array
    kp_p: ak.Array
    kp_theta: ak.Array
    kp_phi: ak.Array

    @classmethod
    def from_columns(cls, beam_energy: float, columns) -> KinematicTuple:
        """Build from a mapping keyed by TUPLE_COLUMNS."""
        return cls(beam_energy, *(columns[name] for name in TUPLE_COLUMNS))

    def _particle(self, p, polar, azimuth, mass: float):
        px, py, pz = spherical_to_cartesian(
            ak.fill_none(p, np.nan),
            ak.fill_none(polar, np.nan),
            ak.fill_none(azimuth, np.nan),
        )
        return four_vector(px, py, pz, mass)

    @cached_property
    def valid(self) -> ak.Array:
        values = [getattr(self, f.name) for f in fields(self) if f.name != "beam_energy"]
        return present(*values)

    @cached_property
    def electron(self):
        return self._particle(self.el_p, self.el_theta, self.el_phi, ELECTRON_MASS)

    @cached_property
    def proton(self):
        return self._particle(self.pro_p, self.pro_theta, self.pro_phi, PROTON_MASS)

    @cached_property
    def k_minus(self):
        return self._particle(self.km_p, self.km_theta, self.km_phi, KAON_MASS)

    @cached_property
    def k_plus(self):
        return self._particle(self.kp_p, self.kp_theta, self.kp_phi, KAON_MASS)

    @cached_property
    def initial_state(self):
        """(beam, target) four-vectors."""
        return beam_and_target(self.el_p, self.beam_energy)

    @property
    def beam(self):
        return self.initial_state[0]

    @property
    def target(self):
        return self.initial_state[1]

    @cached_property
    def virtual_photon(self):
        return self.beam - self.electron

    @cached_property
    def phi_meson(self):
        return self.k_plus + self.k_minus

    @cached_property
    def missing_ep(self):
        """Everything but the scattered electron and recoil proton: the expected φ."""
        return self.beam + self.target - self.electron - self.proton

    @cached_property
    def missing_all(self):
        return self.missing_ep - self.k_plus - self.k_minus

    def trento_phi(self, hadron) -> ak.Array:
        """Angle between lepton and hadron planes, degrees in [0, 360)."""
        q3 = _spatial(self.virtual_photon)
        n_lepton = _spatial(self.beam).cross(_spatial(self.electron))
        n_hadron = q3.cross(_spatial(hadron))

        cos_term = n_lepton.dot(n_hadron)
        sin_term = n_lepton.cross(n_hadron).dot(q3) / q3.mag
        angle = np.degrees(np.arctan2(sin_term, cos_term))
        return angle + 360.0 * (angle < 0)


def get_q2(kin: KinematicTuple):
    return -kin.virtual_photon.mass2


def get_nu(kin: KinematicTuple):
    return kin.virtual_photon.E


def get_y(kin: KinematicTuple):
    return get_nu(kin) / kin.beam_energy


def get_xb(kin: KinematicTuple):
    return get_q2(kin) / (2 * PROTON_MASS * get_nu(kin))


def get_w(kin: KinematicTuple):
    return (kin.virtual_photon + kin.target).mass


def get_t(kin: KinematicTuple):
    return -(kin.target - kin.proton).mass2


def get_phi(kin: KinematicTuple):
    return kin.trento_phi(kin.phi_meson)


def get_mx2_ep(kin: KinematicTuple):
    return kin.missing_ep.mass2


def get_emiss(kin: KinematicTuple):
    return kin.missing_all.E


def get_ptmiss(kin: KinematicTuple):
    return kin.missing_all.pt


def get_mx2_epkpkm(kin: KinematicTuple):
    return kin.missing_all.mass2


def get_mx2_ekpkm(kin: KinematicTuple):
    return (kin.beam + kin.target - kin.electron - kin.k_plus - kin.k_minus).mass2


def get_mx2_epkp(kin: KinematicTuple):
    return (kin.missing_ep - kin.k_plus).mass2


def get_mx2_epkm(kin: KinematicTuple):
    return (kin.missing_ep - kin.k_minus).mass2


def get_delta_phi(kin: KinematicTuple):
    """Trento φ of the measured K⁺K⁻ pair versus that of the ep missing system."""
    diff = np.abs(kin.trento_phi(kin.phi_meson) - kin.trento_phi(kin.missing_ep))
    return np.minimum(diff, 360.0 - diff)


def get_theta_g_phimeson(kin: KinematicTuple):
    """Opening angle between the measured φ and the one expected from ep → e'p'X."""
    return np.degrees(_spatial(kin.missing_ep).deltaangle(_spatial(kin.phi_meson)))


def get_theta_e_phimeson(kin: KinematicTuple):
    return np.degrees(_spatial(kin.electron).deltaangle(_spatial(kin.phi_meson)))


def get_delta_e(kin: KinematicTuple):
    return kin.missing_ep.E - kin.phi_meson.E


OBSERVABLES: Dict[str, Callable[[KinematicTuple], ak.Array]] = {
    "Q2": get_q2,
    "xB": get_xb,
    "t": get_t,
    "phi": get_phi,
    "W": get_w,
    "nu": get_nu,
    "y": get_y,
    "Mx2_ep": get_mx2_ep,
    "Emiss": get_emiss,
    "PTmiss": get_ptmiss,
    "Mx2_epKpKm": get_mx2_epkpkm,
    "Mx2_eKpKm": get_mx2_ekpkm,
    "Mx2_epKp": get_mx2_epkp,
    "Mx2_epKm": get_mx2_epkm,
    "DeltaPhi": get_delta_phi,
    "Theta_g_phimeson": get_theta_g_phimeson,
    "Theta_e_phimeson": get_theta_e_phimeson,
    "DeltaE": get_delta_e,
}


def evaluate_observables(kin: KinematicTuple,
                         names: Optional[Iterable[str]] = None) -> Dict[str, ak.Array]:
    """
    Evaluate the observable table for one kinematic tuple

    Args:
        kin: Kinematic tuple of a channel
        names: Subset of OBSERVABLES to evaluate (all if None)

    Returns:
        Observable name → per-event values, None where the tuple is incomplete
    """
    names = list(OBSERVABLES) if names is None else list(names)
    return {name: ak.mask(OBSERVABLES[name](kin), kin.valid) for name in names}


def observable_columns(beam_energy: float, *columns) -> Dict[str, ak.Array]:
    """Graph stage: evaluate the full table from the TUPLE_COLUMNS arrays."""
    kin = KinematicTuple.from_columns(beam_energy, dict(zip(TUPLE_COLUMNS, columns)))
    return evaluate_observables(kin)
