"""Transition-level assay refinement: reannotation, restriction, detection.

Each function reads the experiment's transitions, decides per transition
(or per peptide group) what to keep, and replaces the transition list in a
single assignment at the end. Removed items are listed in the returned
AssayReport; nothing is raised for an individual transition.
"""

import logging
from dataclasses import replace
from typing import Dict, Optional, Sequence, Tuple, Union

from ..constants import (
    DEFAULT_LOWER_MZ_LIMIT,
    DEFAULT_MAX_TRANSITIONS,
    DEFAULT_MIN_TRANSITIONS,
    DEFAULT_PRECURSOR_MZ_THRESHOLD,
    DEFAULT_PRODUCT_MZ_THRESHOLD,
    DEFAULT_ROUND_DECPOW,
    DEFAULT_UPPER_MZ_LIMIT,
)
from ..experiment import TargetedExperiment
from ..fragments.ladder import (
    IonLadder,
    IonSeriesParams,
    annotate_product_mz,
    ion_series,
    parse_ion_label,
    precursor_mz,
    round_mz,
)
from ..modifications import ModificationDatabase
from ..report import AssayReport, DropReason, Unsupported
from .emitters import check_transition_limits
from .swath import NOT_IN_WINDOW, as_window_array, is_in_window, window_index

logger = logging.getLogger(__name__)


def reannotate_transitions(
    exp: TargetedExperiment,
    precursor_mz_threshold: float = DEFAULT_PRECURSOR_MZ_THRESHOLD,
    product_mz_threshold: float = DEFAULT_PRODUCT_MZ_THRESHOLD,
    fragment_types: Sequence[str] = ('b', 'y'),
    fragment_charges: Sequence[int] = (1, 2, 3, 4),
    enable_specific_losses: bool = False,
    enable_unspecific_losses: bool = False,
    round_decpow: int = DEFAULT_ROUND_DECPOW,
    mod_db: Optional[ModificationDatabase] = None,
) -> AssayReport:
    """Annotate every transition with its theoretical fragment ion.

    The peptide's theoretical precursor m/z must lie within
    ``precursor_mz_threshold`` of the transition's; the product m/z is then
    matched to the nearest ion of the peptide's ladder within
    ``product_mz_threshold``. Matched transitions get the theoretical
    (rounded) m/z values, the fragment label and fields, and their
    peptidoform. Transitions that cannot be annotated are removed.

    Parameters
    ----------
    exp : TargetedExperiment
        Document whose transitions are rewritten
    precursor_mz_threshold, product_mz_threshold : float
        Annotation tolerances in Th
    fragment_types, fragment_charges
        Ion series to match against
    enable_specific_losses, enable_unspecific_losses : bool
        Include neutral-loss ions in the ladder
    round_decpow : int
        Round m/z to 10**round_decpow
    mod_db : ModificationDatabase, optional
        Modification catalogue (default catalogue if omitted)

    Returns
    -------
    AssayReport
        Removed transitions with reasons

    Raises
    ------
    KeyError
        If a transition references a peptide that is not in the document
    """
    if mod_db is None:
        mod_db = ModificationDatabase()
    params = IonSeriesParams.create(
        fragment_types, fragment_charges, enable_specific_losses, enable_unspecific_losses, round_decpow
    )
    report = AssayReport("reannotate_transitions", n_input=len(exp.transitions))

    # Peptide id → (rounded precursor m/z, ladder), computed once per peptide
    ladders: Dict[str, Union[Tuple[float, IonLadder], Unsupported]] = {}
    kept = []
    for transition in exp.transitions:
        peptide = exp.get_peptide(transition.peptide_ref)
        if peptide.id not in ladders:
            ladder = ion_series(peptide.sequence, peptide.modifications, peptide.precursor_charge, params, mod_db)
            if isinstance(ladder, Unsupported):
                ladders[peptide.id] = ladder
            else:
                theoretical = precursor_mz(peptide.sequence, peptide.modifications, peptide.precursor_charge, mod_db)
                ladders[peptide.id] = (round_mz(theoretical, round_decpow), ladder)

        entry = ladders[peptide.id]
        if isinstance(entry, Unsupported):
            report.drop(transition.id, DropReason.UNSUPPORTED_CONFIGURATION, f"{peptide.id}: {entry.reason}")
            continue

        theoretical_precursor, ladder = entry
        if abs(transition.precursor_mz - theoretical_precursor) > precursor_mz_threshold:
            logger.debug(
                f"Precursor m/z of {transition.id} ({transition.precursor_mz:.4f}) does not match "
                f"{peptide.peptidoform} ({theoretical_precursor:.4f})"
            )
            report.drop(
                transition.id, DropReason.PRECURSOR_MISMATCH,
                f"{transition.precursor_mz:.4f} vs theoretical {theoretical_precursor:.4f}",
            )
            continue

        match = annotate_product_mz(ladder, transition.product_mz, product_mz_threshold)
        if match is None:
            report.drop(transition.id, DropReason.UNANNOTATED, f"product m/z {transition.product_mz:.4f}")
            continue

        label, product = match
        ion = parse_ion_label(label)
        kept.append(replace(
            transition,
            precursor_mz=theoretical_precursor,
            product_mz=product,
            annotation=label,
            fragment_type=ion.fragment_type,
            fragment_number=ion.number,
            fragment_charge=ion.charge,
            fragment_loss=ion.loss,
            peptidoforms=(peptide.peptidoform,),
        ))

    exp.set_transitions(kept)
    report.n_output = len(kept)
    report.log_summary(logger)
    return report


def restrict_transitions(
    exp: TargetedExperiment,
    lower_mz_limit: float = DEFAULT_LOWER_MZ_LIMIT,
    upper_mz_limit: float = DEFAULT_UPPER_MZ_LIMIT,
    swathes=(),
) -> AssayReport:
    """Remove transitions that cannot be measured.

    A transition is removed if its product m/z lies outside
    [lower_mz_limit, upper_mz_limit], or, when windows are given, if its
    precursor is outside every window or its product falls inside the
    precursor's own window.
    """
    windows = as_window_array(swathes)
    report = AssayReport("restrict_transitions", n_input=len(exp.transitions))

    kept = []
    for transition in exp.transitions:
        if len(windows):
            if window_index(windows, transition.precursor_mz) == NOT_IN_WINDOW:
                report.drop(transition.id, DropReason.PRECURSOR_OUTSIDE_WINDOWS,
                            f"precursor m/z {transition.precursor_mz:.4f}")
                continue
            if is_in_window(windows, transition.precursor_mz, transition.product_mz):
                report.drop(transition.id, DropReason.IN_PRECURSOR_WINDOW,
                            f"product m/z {transition.product_mz:.4f}")
                continue
        if not lower_mz_limit <= transition.product_mz <= upper_mz_limit:
            report.drop(transition.id, DropReason.OUT_OF_RANGE,
                        f"product m/z {transition.product_mz:.4f} outside [{lower_mz_limit}, {upper_mz_limit}]")
            continue
        kept.append(transition)

    exp.set_transitions(kept)
    report.n_output = len(kept)
    report.log_summary(logger)
    return report


def detecting_transitions(
    exp: TargetedExperiment,
    min_transitions: int = DEFAULT_MIN_TRANSITIONS,
    max_transitions: int = DEFAULT_MAX_TRANSITIONS,
) -> AssayReport:
    """Keep the most intense target transitions of each peptide as detecting.

    Per peptide, target transitions are ranked by library intensity (ties
    keep document order) and the top ``max_transitions`` are flagged
    detecting. Peptides with fewer than ``min_transitions`` target
    transitions lose all of them. Decoy transitions are removed.
    """
    report = AssayReport("detecting_transitions", n_input=len(exp.transitions))
    unsupported = check_transition_limits(min_transitions, max_transitions)

    kept = []
    for peptide_ref, group in exp.transitions_by_peptide().items():
        if unsupported is not None:
            report.drop(peptide_ref, DropReason.UNSUPPORTED_CONFIGURATION, unsupported.reason)
            continue

        candidates = [transition for transition in group if not transition.decoy]
        if len(candidates) < min_transitions:
            report.drop(
                peptide_ref, DropReason.BELOW_MIN_TRANSITIONS,
                f"{len(candidates)} transitions < min_transitions={min_transitions}",
            )
            continue

        # sorted() is stable, so equal intensities keep document order
        ranked = sorted(range(len(candidates)), key=lambda i: -candidates[i].library_intensity)
        selected = set(ranked[:max_transitions])
        kept.extend(
            replace(transition, detecting=True)
            for i, transition in enumerate(candidates) if i in selected
        )

    exp.set_transitions(kept)
    report.n_output = len(kept)
    report.log_summary(logger)
    return report
