"""Target and decoy UIS assay emitters.

An assay is the group of transitions emitted for one peptide. Selection is
all-or-nothing: a peptide with fewer qualifying ions than
``min_transitions`` gets no transitions at all, never a partial assay.
"""

import logging
from typing import AbstractSet, Dict, List, Optional, Sequence, Tuple

from ..constants import (
    DEFAULT_MAX_TRANSITIONS,
    DEFAULT_MIN_TRANSITIONS,
    DEFAULT_ROUND_DECPOW,
    DEFAULT_UIS_MZ_THRESHOLD,
)
from ..experiment import Peptide, Transition
from ..fragments.ladder import parse_ion_label, round_mz
from ..report import AssayReport, DropReason, Unsupported
from .insilico import InSilicoMap
from .interference import is_unique_ion_signature, matching_peptidoforms

logger = logging.getLogger(__name__)

DECOY_REFERENCES = ('target', 'decoy')


def check_transition_limits(min_transitions: int, max_transitions: int) -> Optional[Unsupported]:
    """Return Unsupported unless 1 <= min_transitions <= max_transitions."""
    if min_transitions < 1 or max_transitions < min_transitions:
        return Unsupported(
            f"invalid transition limits: min_transitions={min_transitions}, "
            f"max_transitions={max_transitions}"
        )
    return None


def select_assay_ions(
    ions: Sequence[Tuple[str, float]],
    min_transitions: int,
    max_transitions: int,
    preferred_mz: AbstractSet[float] = frozenset(),
) -> List[Tuple[str, float]]:
    """Pick the ions of one assay.

    Parameters
    ----------
    ions : sequence of (str, float)
        Qualifying (label, m/z) ions of one peptide
    min_transitions, max_transitions : int
        Assay size limits
    preferred_mz : set of float
        Rounded product m/z of transitions already flagged detecting;
        matching ions are taken first

    Returns
    -------
    list of (str, float)
        Empty if fewer than ``min_transitions`` ions qualify, otherwise up
        to ``max_transitions`` ions ordered by preference then m/z

    Examples
    --------
    >>> select_assay_ions([("y2^1", 263.1), ("b2^1", 227.1), ("y1^1", 148.1)], 2, 2)
    [('y1^1', 148.1), ('b2^1', 227.1)]
    >>> select_assay_ions([("y1^1", 148.1)], 2, 6)
    []
    """
    if check_transition_limits(min_transitions, max_transitions) is not None:
        return []
    if len(ions) < min_transitions:
        return []
    ranked = sorted(ions, key=lambda ion: (ion[1] not in preferred_mz, ion[1]))
    return ranked[:max_transitions]


def make_uis_transition(
    peptide: Peptide,
    precursor_mz: float,
    label: str,
    product_mz: float,
) -> Transition:
    """Identification transition for one UIS ion of ``peptide``."""
    ion = parse_ion_label(label)
    if ion is None:
        # MS2 precursor ion
        fragment_type, number, loss, charge = "", 0, "", peptide.precursor_charge
    else:
        fragment_type, number, loss, charge = ion

    return Transition(
        id=f"{peptide.id}_UIS_{label}",
        peptide_ref=peptide.id,
        precursor_mz=precursor_mz,
        product_mz=product_mz,
        annotation=label,
        fragment_type=fragment_type,
        fragment_number=number,
        fragment_charge=charge,
        fragment_loss=loss,
        decoy=peptide.decoy,
        detecting=False,
        identifying=True,
        quantifying=False,
        peptidoforms=(peptide.peptidoform,),
    )


def _emit_assay(
    peptide: Peptide,
    precursor_mz: float,
    qualifying: List[Tuple[str, float]],
    min_transitions: int,
    max_transitions: int,
    preferred_mz: AbstractSet[float],
    report: AssayReport,
) -> List[Transition]:
    selected = select_assay_ions(qualifying, min_transitions, max_transitions, preferred_mz)
    if not selected:
        logger.debug(f"[uis] {peptide.id}: {len(qualifying)} UIS ions < {min_transitions}")
        report.drop(
            peptide.id, DropReason.BELOW_MIN_TRANSITIONS,
            f"{len(qualifying)} UIS ions < min_transitions={min_transitions}",
        )
        return []
    return [make_uis_transition(peptide, precursor_mz, label, mz) for label, mz in selected]


def generate_target_assays(
    target_map: InSilicoMap,
    mz_threshold: float = DEFAULT_UIS_MZ_THRESHOLD,
    min_transitions: int = DEFAULT_MIN_TRANSITIONS,
    max_transitions: int = DEFAULT_MAX_TRANSITIONS,
    detecting_mz: Optional[Dict[str, AbstractSet[float]]] = None,
    interference_scope: str = 'window',
    round_decpow: int = DEFAULT_ROUND_DECPOW,
    report: Optional[AssayReport] = None,
) -> List[Transition]:
    """Emit UIS transitions for every target peptide in the map.

    An ion qualifies iff every peptidoform matching it within
    ``mz_threshold`` is the peptide's own.

    Parameters
    ----------
    target_map : InSilicoMap
        Target in-silico map
    mz_threshold : float
        Interference tolerance in Th
    min_transitions, max_transitions : int
        Assay size limits
    detecting_mz : dict, optional
        Peptide id → rounded product m/z of existing detecting transitions,
        preferred during selection
    interference_scope : str
        "window" (default) or "peptide" (see InSilicoMap.population)
    round_decpow : int
        Precursor m/z rounding
    report : AssayReport, optional
        Receives dropped assays

    Returns
    -------
    list of Transition
        In peptide order, each assay by preference then ascending m/z
    """
    if report is None:
        report = AssayReport("generate_target_assays")
    if detecting_mz is None:
        detecting_mz = {}

    unsupported = check_transition_limits(min_transitions, max_transitions)
    transitions: List[Transition] = []
    for peptide_id, ions in target_map.peptide_map.items():
        if unsupported is not None:
            report.drop(peptide_id, DropReason.UNSUPPORTED_CONFIGURATION, unsupported.reason)
            continue
        if not ions:
            report.drop(peptide_id, DropReason.EMPTY_AFTER_FILTERING, "no fragment ions left after window filtering")
            continue

        peptide = target_map.peptides[peptide_id]
        precursor, window = target_map.precursors[peptide_id]
        population = target_map.population(window, peptide.sequence, interference_scope)
        own = peptide.peptidoform
        uis = [(label, mz) for label, mz in ions if is_unique_ion_signature(mz, own, population, mz_threshold)]

        assay = _emit_assay(
            peptide, round_mz(precursor, round_decpow), uis,
            min_transitions, max_transitions, detecting_mz.get(peptide_id, frozenset()), report,
        )
        if assay:
            report.n_target_assays += 1
            transitions.extend(assay)

    logger.info(f"✓ Emitted {len(transitions):,} target UIS transitions ({report.n_target_assays:,} assays)")
    return transitions


def generate_decoy_assays(
    decoy_map: InSilicoMap,
    target_map: InSilicoMap,
    mz_threshold: float = DEFAULT_UIS_MZ_THRESHOLD,
    min_transitions: int = DEFAULT_MIN_TRANSITIONS,
    max_transitions: int = DEFAULT_MAX_TRANSITIONS,
    interference_scope: str = 'window',
    decoy_reference: str = 'target',
    round_decpow: int = DEFAULT_ROUND_DECPOW,
    report: Optional[AssayReport] = None,
) -> Tuple[List[Transition], List[Peptide]]:
    """Emit UIS transitions for every decoy peptide in the decoy map.

    With ``decoy_reference="target"`` a decoy ion qualifies iff no target
    peptidoform has an ion within ``mz_threshold`` in the population of the
    decoy's target. With ``"decoy"`` it must be a UIS of the decoy
    peptidoform within the decoy population.

    Returns
    -------
    transitions : list of Transition
    peptides : list of Peptide
        Decoy peptides that received an assay

    Raises
    ------
    ValueError
        If decoy_reference is not recognized
    """
    if decoy_reference not in DECOY_REFERENCES:
        raise ValueError(f"Unknown decoy reference: {decoy_reference}. Must be 'target' or 'decoy'")
    if report is None:
        report = AssayReport("generate_decoy_assays")

    unsupported = check_transition_limits(min_transitions, max_transitions)
    transitions: List[Transition] = []
    peptides: List[Peptide] = []
    for decoy_id, ions in decoy_map.peptide_map.items():
        if unsupported is not None:
            report.drop(decoy_id, DropReason.UNSUPPORTED_CONFIGURATION, unsupported.reason)
            continue
        if not ions:
            report.drop(decoy_id, DropReason.EMPTY_AFTER_FILTERING, "no fragment ions left after window filtering")
            continue

        decoy = decoy_map.peptides[decoy_id]
        precursor, window = decoy_map.precursors[decoy_id]
        if decoy_reference == 'target':
            target = target_map.peptides[decoy_map.decoy_to_target[decoy_id]]
            _, target_window = target_map.precursors[target.id]
            population = target_map.population(target_window, target.sequence, interference_scope)
            qualifying = [(label, mz) for label, mz in ions
                          if not matching_peptidoforms(mz, population, mz_threshold)]
        else:
            population = decoy_map.population(window, decoy.sequence, interference_scope)
            own = decoy.peptidoform
            qualifying = [(label, mz) for label, mz in ions
                          if is_unique_ion_signature(mz, own, population, mz_threshold)]

        assay = _emit_assay(
            decoy, round_mz(precursor, round_decpow), qualifying,
            min_transitions, max_transitions, frozenset(), report,
        )
        if assay:
            report.n_decoy_assays += 1
            transitions.extend(assay)
            peptides.append(decoy)

    logger.info(f"✓ Emitted {len(transitions):,} decoy UIS transitions ({report.n_decoy_assays:,} assays)")
    return transitions, peptides
