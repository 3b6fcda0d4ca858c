"""Convenience wrapper functions for easy-to-use API.

This module chains the assay generation steps the way a typical
library-to-assay workflow runs them, and wraps ion series generation for
peptidoform labels.

Examples
--------
>>> # Fragment a peptidoform label
>>> ladder = peptidoform_ion_series("PEPS[Phospho]TIDEK", charge=2)

>>> # Full pipeline on an experiment
>>> reports = generate_assays(exp, swathes=[(400, 425), (425, 450)])
"""

import logging
from typing import List, Optional, Sequence

from .constants import (
    DEFAULT_LOWER_MZ_LIMIT,
    DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS,
    DEFAULT_MAX_TRANSITIONS,
    DEFAULT_MIN_TRANSITIONS,
    DEFAULT_PRECURSOR_MZ_THRESHOLD,
    DEFAULT_PRODUCT_MZ_THRESHOLD,
    DEFAULT_ROUND_DECPOW,
    DEFAULT_SHUFFLE_SEED,
    DEFAULT_UIS_MZ_THRESHOLD,
    DEFAULT_UPPER_MZ_LIMIT,
)
from .experiment import TargetedExperiment
from .fragments.ladder import IonLadder, IonSeriesParams, ion_series
from .modifications import ModificationDatabase, parse_peptidoform
from .report import AssayReport, Unsupported
from .assay.transitions import detecting_transitions, reannotate_transitions, restrict_transitions
from .assay.uis import uis_transitions

logger = logging.getLogger(__name__)


# =============================================================================
# Ion Series Wrappers
# =============================================================================

def peptidoform_ion_series(
    peptidoform: str,
    charge: int = 2,
    fragment_types: Sequence[str] = ('b', 'y'),
    fragment_charges: Sequence[int] = (1, 2),
    enable_specific_losses: bool = False,
    enable_unspecific_losses: bool = False,
    round_decpow: int = DEFAULT_ROUND_DECPOW,
    mod_db: Optional[ModificationDatabase] = None,
) -> IonLadder:
    """Labelled fragment ladder of a peptidoform label (convenience wrapper).

    Parameters
    ----------
    peptidoform : str
        Label such as ``PEPS[Phospho]TIDEK``
    charge : int
        Precursor charge
    fragment_types, fragment_charges
        Ion series to generate
    enable_specific_losses, enable_unspecific_losses : bool
        Neutral-loss ions
    round_decpow : int
        Round m/z to 10**round_decpow
    mod_db : ModificationDatabase, optional
        Modification catalogue

    Returns
    -------
    list of (str, float)
        (label, m/z) ladder

    Raises
    ------
    ValueError
        If the label cannot be parsed or the peptidoform cannot be fragmented

    Examples
    --------
    >>> peptidoform_ion_series("PEPTIDE", charge=1, fragment_types=('y',))[0]
    ('y1^1', 148.0604)
    """
    if mod_db is None:
        mod_db = ModificationDatabase()
    sequence, modifications = parse_peptidoform(peptidoform)
    params = IonSeriesParams.create(
        fragment_types, fragment_charges, enable_specific_losses, enable_unspecific_losses, round_decpow
    )
    ladder = ion_series(sequence, modifications, charge, params, mod_db)
    if isinstance(ladder, Unsupported):
        raise ValueError(f"Cannot fragment {peptidoform}: {ladder.reason}")
    return ladder


# =============================================================================
# Assay Generation Pipeline
# =============================================================================

def generate_assays(
    exp: TargetedExperiment,
    fragment_types: Sequence[str] = ('b', 'y'),
    fragment_charges: Sequence[int] = (1, 2),
    enable_specific_losses: bool = False,
    enable_unspecific_losses: bool = False,
    precursor_mz_threshold: float = DEFAULT_PRECURSOR_MZ_THRESHOLD,
    product_mz_threshold: float = DEFAULT_PRODUCT_MZ_THRESHOLD,
    lower_mz_limit: float = DEFAULT_LOWER_MZ_LIMIT,
    upper_mz_limit: float = DEFAULT_UPPER_MZ_LIMIT,
    swathes=(),
    min_transitions: int = DEFAULT_MIN_TRANSITIONS,
    max_transitions: int = DEFAULT_MAX_TRANSITIONS,
    enable_uis: bool = False,
    enable_ms2_precursors: bool = False,
    uis_mz_threshold: float = DEFAULT_UIS_MZ_THRESHOLD,
    round_decpow: int = DEFAULT_ROUND_DECPOW,
    max_num_alternative_localizations: int = DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS,
    shuffle_seed: int = DEFAULT_SHUFFLE_SEED,
    disable_decoy_transitions: bool = False,
    mod_db: Optional[ModificationDatabase] = None,
) -> List[AssayReport]:
    """Run the assay generation pipeline on an experiment.

    Steps:
    1. reannotate_transitions: match library transitions to theoretical ions
    2. restrict_transitions: product m/z limits and precursor windows
    3. detecting_transitions: keep the most intense transitions per peptide
    4. uis_transitions (if ``enable_uis``): add identifying UIS transitions
       and their decoys

    Returns
    -------
    list of AssayReport
        One report per step, in order
    """
    if mod_db is None:
        mod_db = ModificationDatabase()

    logger.info(f"Generating assays for {len(exp.peptides):,} peptides, {len(exp.transitions):,} transitions")

    reports = [
        reannotate_transitions(
            exp, precursor_mz_threshold, product_mz_threshold, fragment_types, fragment_charges,
            enable_specific_losses, enable_unspecific_losses, round_decpow, mod_db,
        ),
        restrict_transitions(exp, lower_mz_limit, upper_mz_limit, swathes),
        detecting_transitions(exp, min_transitions, max_transitions),
    ]

    if enable_uis:
        reports.append(uis_transitions(
            exp,
            fragment_types=fragment_types,
            fragment_charges=fragment_charges,
            enable_specific_losses=enable_specific_losses,
            enable_unspecific_losses=enable_unspecific_losses,
            enable_ms2_precursors=enable_ms2_precursors,
            mz_threshold=uis_mz_threshold,
            swathes=swathes,
            round_decpow=round_decpow,
            max_num_alternative_localizations=max_num_alternative_localizations,
            shuffle_seed=shuffle_seed,
            disable_decoy_transitions=disable_decoy_transitions,
            min_transitions=min_transitions,
            max_transitions=max_transitions,
            mod_db=mod_db,
        ))

    logger.info(f"✓ Assay generation complete: {len(exp.transitions):,} transitions")
    return reports
