"""Unique ion signature (UIS) transition generation.

Runs as a fixed sequence of stages:

    BuildTargetMap → SynthesizeDecoys → BuildDecoyMap
        → EmitTargetAssays → EmitDecoyAssays → Done

No stage is re-entered. All intermediate maps belong to one call; the
experiment is only modified once Done is reached, so an exception in any
stage leaves the document untouched.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

from ..constants import (
    DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS,
    DEFAULT_MAX_TRANSITIONS,
    DEFAULT_MIN_TRANSITIONS,
    DEFAULT_ROUND_DECPOW,
    DEFAULT_SHUFFLE_SEED,
    DEFAULT_UIS_MZ_THRESHOLD,
    DECOY_PREFIX,
)
from ..experiment import Peptide, Protein, TargetedExperiment, Transition
from ..fragments.ladder import IonSeriesParams, round_mz
from ..modifications import ModificationDatabase
from ..report import AssayReport
from .decoys import DECOY_METHODS, PLACEMENT_MODES, synthesize_decoys
from .emitters import DECOY_REFERENCES, generate_decoy_assays, generate_target_assays
from .insilico import INTERFERENCE_SCOPES, build_decoy_map, build_target_map

logger = logging.getLogger(__name__)


class UISStage(Enum):
    BUILD_TARGET_MAP = "BuildTargetMap"
    SYNTHESIZE_DECOYS = "SynthesizeDecoys"
    BUILD_DECOY_MAP = "BuildDecoyMap"
    EMIT_TARGET_ASSAYS = "EmitTargetAssays"
    EMIT_DECOY_ASSAYS = "EmitDecoyAssays"
    DONE = "Done"


def _detecting_product_mz(exp: TargetedExperiment, round_decpow: int) -> Dict[str, Set[float]]:
    """Peptide id → rounded product m/z of its detecting target transitions."""
    detecting: Dict[str, Set[float]] = {}
    for transition in exp.transitions:
        if transition.detecting and not transition.decoy:
            detecting.setdefault(transition.peptide_ref, set()).add(
                round_mz(transition.product_mz, round_decpow)
            )
    return detecting


def _decoy_proteins(exp: TargetedExperiment, decoy_peptides: List[Peptide]) -> List[Protein]:
    proteins: Dict[str, Protein] = {}
    for peptide in decoy_peptides:
        for ref in peptide.protein_refs:
            if exp.has_protein(ref) or ref in proteins:
                continue
            proteins[ref] = Protein(id=ref, description=f"Decoy of {ref[len(DECOY_PREFIX):]}")
    return list(proteins.values())


def uis_transitions(
    exp: TargetedExperiment,
    fragment_types: Sequence[str] = ('b', 'y'),
    fragment_charges: Sequence[int] = (1, 2),
    enable_specific_losses: bool = False,
    enable_unspecific_losses: bool = False,
    enable_ms2_precursors: bool = False,
    mz_threshold: float = DEFAULT_UIS_MZ_THRESHOLD,
    swathes=(),
    round_decpow: int = DEFAULT_ROUND_DECPOW,
    max_num_alternative_localizations: int = DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS,
    shuffle_seed: int = DEFAULT_SHUFFLE_SEED,
    disable_decoy_transitions: bool = False,
    min_transitions: int = DEFAULT_MIN_TRANSITIONS,
    max_transitions: int = DEFAULT_MAX_TRANSITIONS,
    mod_db: Optional[ModificationDatabase] = None,
    interference_scope: str = 'window',
    decoy_reference: str = 'target',
    decoy_placement: str = 'transfer',
    decoy_method: str = 'shuffle',
) -> AssayReport:
    """Generate identification transitions from unique ion signatures.

    For every target peptide, all alternative localizations of its
    modifications are fragmented; fragment ions that only its own
    peptidoform produces (within ``mz_threshold``, in the same precursor
    window) become identifying transitions. A shuffled decoy is synthesized
    per target sequence and gets decoy transitions from ions no target
    produces.

    Parameters
    ----------
    exp : TargetedExperiment
        Document; UIS transitions (and emitted decoy peptides/proteins) are
        appended to it
    fragment_types : sequence of str
        Ion series (a, b, c, x, y, z)
    fragment_charges : sequence of int
        Fragment charge states
    enable_specific_losses, enable_unspecific_losses : bool
        Neutral-loss ions
    enable_ms2_precursors : bool
        Add the unfragmented precursor as an ion (``MS2_Precursor_i0``).
        This ion always lies inside its own precursor window and is exempt
        from the in-window product filter applied to fragment ions
    mz_threshold : float
        Interference tolerance in Th
    swathes : sequence of (float, float)
        Precursor isolation windows [low, high), sorted; empty for none
    round_decpow : int
        Round m/z to 10**round_decpow
    max_num_alternative_localizations : int
        Peptides with more modification placements are skipped
    shuffle_seed : int
        -1 for a time-derived seed, otherwise reproducible decoys
    disable_decoy_transitions : bool
        Build decoys and decoy maps but emit no decoy transitions
    min_transitions, max_transitions : int
        Assay size limits (all-or-nothing per peptide)
    mod_db : ModificationDatabase, optional
        Modification catalogue
    interference_scope : str
        "window" (all ions in the precursor window, default) or "peptide"
        (peptidoforms of the same unmodified sequence only)
    decoy_reference : str
        "target" or "decoy" population for decoy ion validity
    decoy_placement : str
        "transfer" or "recombine" decoy modification placements
    decoy_method : str
        "shuffle", "reverse" or "pseudo_reverse"

    Returns
    -------
    AssayReport
        Stages, assay counts and dropped peptides with reasons

    Raises
    ------
    ValueError
        If a strategy name is not recognized
    """
    if interference_scope not in INTERFERENCE_SCOPES:
        raise ValueError(f"Unknown interference scope: {interference_scope}. Must be 'window' or 'peptide'")
    if decoy_reference not in DECOY_REFERENCES:
        raise ValueError(f"Unknown decoy reference: {decoy_reference}. Must be 'target' or 'decoy'")
    if decoy_placement not in PLACEMENT_MODES:
        raise ValueError(f"Unknown placement mode: {decoy_placement}. Must be 'transfer' or 'recombine'")
    if decoy_method not in DECOY_METHODS:
        raise ValueError(
            f"Unknown decoy method: {decoy_method}. Must be 'shuffle', 'reverse', or 'pseudo_reverse'"
        )
    if mod_db is None:
        mod_db = ModificationDatabase()

    params = IonSeriesParams.create(
        fragment_types, fragment_charges, enable_specific_losses, enable_unspecific_losses, round_decpow
    )
    report = AssayReport("uis_transitions", n_input=len(exp.transitions))

    def enter(stage: UISStage) -> None:
        logger.info(f"[uis] {stage.value}")
        report.stages.append(stage.value)

    enter(UISStage.BUILD_TARGET_MAP)
    target_map = build_target_map(
        exp, params, swathes, enable_ms2_precursors, max_num_alternative_localizations, mod_db, report
    )

    enter(UISStage.SYNTHESIZE_DECOYS)
    assignments = synthesize_decoys(
        exp.peptides, target_map.placement_map, shuffle_seed, mod_db,
        decoy_placement, decoy_method, max_num_alternative_localizations,
    )

    enter(UISStage.BUILD_DECOY_MAP)
    decoy_map = build_decoy_map(assignments, params, swathes, enable_ms2_precursors, mod_db, report)

    enter(UISStage.EMIT_TARGET_ASSAYS)
    target_transitions = generate_target_assays(
        target_map, mz_threshold, min_transitions, max_transitions,
        _detecting_product_mz(exp, round_decpow), interference_scope, round_decpow, report,
    )

    enter(UISStage.EMIT_DECOY_ASSAYS)
    decoy_transitions: List[Transition] = []
    decoy_peptides: List[Peptide] = []
    if disable_decoy_transitions:
        logger.info("Decoy UIS transitions disabled, skipping emission")
    else:
        decoy_transitions, decoy_peptides = generate_decoy_assays(
            decoy_map, target_map, mz_threshold, min_transitions, max_transitions,
            interference_scope, decoy_reference, round_decpow, report,
        )

    enter(UISStage.DONE)
    new_peptides = [peptide for peptide in decoy_peptides if not exp.has_peptide(peptide.id)]
    for protein in _decoy_proteins(exp, new_peptides):
        exp.add_protein(protein)
    for peptide in new_peptides:
        exp.add_peptide(peptide)
    exp.set_transitions(exp.transitions + target_transitions + decoy_transitions)

    report.n_output = len(exp.transitions)
    report.log_summary(logger)
    return report
