"""Labelled ion series with neutral losses and m/z rounding.

Wraps the Numba fragment kernel into the ladder used for transition
annotation and UIS generation: a list of (label, m/z) pairs such as
``("y5^1", 605.3141)`` or ``("b4-H3O4P1^1", 393.1769)``.

Configurations the kernel cannot handle (unknown fragment types, unknown
residues, modifications that are not in the catalogue or not allowed on
their residue) are returned as Unsupported rather than raised, so a batch
can skip the offending peptide and report it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from ..constants import (
    AA_MASSES,
    DEFAULT_ROUND_DECPOW,
    FRAGMENT_TYPE_CODES,
    FRAGMENT_TYPE_NAMES,
    N_TERMINAL_TYPES,
    NEUTRAL_LOSS_MASSES,
    PROTON_MASS,
    RESIDUE_LOSSES,
    UNSPECIFIC_LOSSES,
)
from ..modifications import (
    ModificationDatabase,
    calculate_modified_neutral_mass,
    prepare_modifications_for_numba,
)
from ..report import Unsupported
from .generator import (
    calculate_precursor_mz,
    encode_peptide_to_ord,
    generate_fragment_ions,
)

IonLadder = List[Tuple[str, float]]

_ION_LABEL = re.compile(r"^([abcxyz])(\d+)(?:-([A-Za-z0-9]+))?\^(\d+)$")


@dataclass(frozen=True)
class IonSeriesParams:
    """Parameters for in-silico ion series generation.

    Attributes
    ----------
    fragment_types : tuple of str
        Ion series to generate, any of a, b, c, x, y, z
    fragment_charges : tuple of int
        Fragment charge states
    enable_specific_losses : bool
        Add residue- and modification-specific neutral losses
    enable_unspecific_losses : bool
        Add H2O1, H3N1, C1H2N2 and C1H2N1O1 losses to every ion
    round_decpow : int
        Round m/z to 10**round_decpow Th
    """
    fragment_types: Tuple[str, ...] = ('b', 'y')
    fragment_charges: Tuple[int, ...] = (1, 2)
    enable_specific_losses: bool = False
    enable_unspecific_losses: bool = False
    round_decpow: int = DEFAULT_ROUND_DECPOW

    @classmethod
    def create(
        cls,
        fragment_types: Iterable[str],
        fragment_charges: Iterable[int],
        enable_specific_losses: bool = False,
        enable_unspecific_losses: bool = False,
        round_decpow: int = DEFAULT_ROUND_DECPOW,
    ) -> 'IonSeriesParams':
        return cls(
            fragment_types=tuple(fragment_types),
            fragment_charges=tuple(int(z) for z in fragment_charges),
            enable_specific_losses=enable_specific_losses,
            enable_unspecific_losses=enable_unspecific_losses,
            round_decpow=round_decpow,
        )

    def check(self) -> Optional[Unsupported]:
        unknown = [t for t in self.fragment_types if t not in FRAGMENT_TYPE_CODES]
        if unknown:
            return Unsupported(f"unsupported fragment type(s): {', '.join(unknown)}")
        bad_charges = [z for z in self.fragment_charges if z < 1]
        if bad_charges:
            return Unsupported(f"fragment charges must be positive, got {bad_charges}")
        return None


class IonLabel(NamedTuple):
    fragment_type: str
    number: int
    loss: str
    charge: int


def round_mz(mz: float, round_decpow: int = DEFAULT_ROUND_DECPOW) -> float:
    """Round m/z to 10**round_decpow.

    Examples
    --------
    >>> round_mz(376.171441, -4)
    376.1714
    """
    return round(float(mz), -round_decpow)


def parse_ion_label(label: str) -> Optional[IonLabel]:
    """Split a fragment label into type, number, loss and charge.

    Examples
    --------
    >>> parse_ion_label("y5-H2O1^2")
    IonLabel(fragment_type='y', number=5, loss='H2O1', charge=2)
    """
    match = _ION_LABEL.match(label)
    if match is None:
        return None
    return IonLabel(match.group(1), int(match.group(2)), match.group(3) or "", int(match.group(4)))


def check_peptidoform(
    sequence: str,
    modifications: Sequence[Tuple[str, int]],
    mod_db: ModificationDatabase,
) -> Optional[Unsupported]:
    """Return Unsupported if the peptidoform cannot be fragmented."""
    for i, aa in enumerate(sequence):
        if ord(aa) > 255 or AA_MASSES[ord(aa)] == 0.0:
            return Unsupported(f"unknown residue '{aa}' at position {i} in {sequence}")
    problem = mod_db.validate(sequence, modifications)
    if problem is not None:
        return Unsupported(problem)
    return None


def precursor_mz(
    sequence: str,
    modifications: Sequence[Tuple[str, int]],
    charge: int,
    mod_db: ModificationDatabase,
) -> float:
    """Theoretical (unrounded) precursor m/z of a peptidoform."""
    neutral_mass = calculate_modified_neutral_mass(
        encode_peptide_to_ord(sequence),
        prepare_modifications_for_numba(modifications, mod_db),
    )
    return calculate_precursor_mz(neutral_mass, charge)


def _fragment_losses(
    residues: str,
    fragment_modifications: List[str],
    params: IonSeriesParams,
    mod_db: ModificationDatabase,
) -> List[str]:
    losses = []
    if params.enable_specific_losses:
        for aa in residues:
            losses.extend(RESIDUE_LOSSES.get(aa, ()))
        for name in fragment_modifications:
            losses.extend(mod_db.neutral_losses(name))
    if params.enable_unspecific_losses:
        losses.extend(UNSPECIFIC_LOSSES)
    # first-seen order, no duplicates
    return list(dict.fromkeys(losses))


def ion_series(
    sequence: str,
    modifications: Sequence[Tuple[str, int]],
    precursor_charge: int,
    params: IonSeriesParams,
    mod_db: ModificationDatabase,
) -> Union[IonLadder, Unsupported]:
    """Generate the labelled fragment ladder of a peptidoform.

    Parameters
    ----------
    sequence : str
        Unmodified sequence
    modifications : sequence of (str, int)
        (modification_name, 0-based position)
    precursor_charge : int
        Precursor charge; fragment charges above it are skipped
    params : IonSeriesParams
        Ion types, charges, loss toggles and rounding
    mod_db : ModificationDatabase
        Modification masses and losses

    Returns
    -------
    list of (str, float) or Unsupported
        (label, rounded m/z) in fragment type, position, charge order; each
        ion is followed by its neutral-loss variants

    Examples
    --------
    >>> ladder = ion_series("PEPTIDE", (), 2, IonSeriesParams(('y',), (1,)), ModificationDatabase())
    >>> ladder[2]
    ('y3^1', 376.1714)
    """
    unsupported = params.check() or check_peptidoform(sequence, modifications, mod_db)
    if unsupported is not None:
        return unsupported

    mz, types, positions, charges = generate_fragment_ions(
        encode_peptide_to_ord(sequence),
        prepare_modifications_for_numba(modifications, mod_db),
        precursor_charge,
        np.array([FRAGMENT_TYPE_CODES[t] for t in params.fragment_types], dtype=np.int64),
        np.array(params.fragment_charges, dtype=np.int64),
    )

    with_losses = params.enable_specific_losses or params.enable_unspecific_losses
    n = len(sequence)
    ladder: IonLadder = []
    for i in range(len(mz)):
        frag_type = FRAGMENT_TYPE_NAMES[int(types[i])]
        position = int(positions[i])
        charge = int(charges[i])
        ladder.append((f"{frag_type}{position}^{charge}", round_mz(mz[i], params.round_decpow)))

        if not with_losses:
            continue

        if frag_type in N_TERMINAL_TYPES:
            start, stop = 0, position
        else:
            start, stop = n - position, n
        fragment_modifications = [name for name, site in modifications if start <= site < stop]
        for loss in _fragment_losses(sequence[start:stop], fragment_modifications, params, mod_db):
            loss_mz = mz[i] - NEUTRAL_LOSS_MASSES[loss] / charge
            if loss_mz <= PROTON_MASS:
                continue
            ladder.append((f"{frag_type}{position}-{loss}^{charge}", round_mz(loss_mz, params.round_decpow)))

    return ladder


def annotate_product_mz(
    ladder: IonLadder,
    product_mz: float,
    tolerance: float,
) -> Optional[Tuple[str, float]]:
    """Find the ladder ion closest to ``product_mz`` within ``tolerance``.

    Ties resolve to the ion listed first. Returns None if nothing is within
    tolerance.
    """
    best = None
    best_error = tolerance
    for label, mz in ladder:
        error = abs(mz - product_mz)
        if error <= best_error and (best is None or error < best_error):
            best = (label, mz)
            best_error = error
    return best
