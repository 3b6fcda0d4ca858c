"""In-silico ion maps for UIS transition generation.

For every peptide, all alternative localizations of its modifications are
fragmented in silico. The resulting ions are bucketed by precursor
isolation window and unmodified sequence, which defines the population a
fragment ion has to be unique in.

Map layout
----------
sequence_map[window][sequence] -> {peptidoform, ...}
    Localization bookkeeping: which peptidoforms compete in a window
ion_map[window][sequence] -> [(mz, peptidoform), ...]
    Every fragment ion that survived window filtering
peptide_map[peptide_id] -> [(fragment_label, mz), ...]
    Ions of the peptide's own peptidoform, used for transition selection.
    Peptides whose ions were all filtered keep an empty entry.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set, Tuple

import numpy as np

from ..constants import DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS, MS2_PRECURSOR_LABEL
from ..experiment import Peptide, TargetedExperiment
from ..fragments.ladder import (
    IonSeriesParams,
    check_peptidoform,
    ion_series,
    precursor_mz,
    round_mz,
)
from ..modifications import ModificationDatabase, ModificationList, format_peptidoform
from ..report import AssayReport, DropReason, Unsupported
from .combinatorics import combine_modifications
from .decoys import DecoyAssignment
from .interference import IonPopulation
from .swath import NOT_IN_WINDOW, as_window_array, window_index_numba

logger = logging.getLogger(__name__)

INTERFERENCE_SCOPES = ('window', 'peptide')


def _nested(factory):
    return defaultdict(lambda: defaultdict(factory))


@dataclass
class InSilicoMap:
    """Fragment ion populations and per-peptide ion lists.

    Attributes
    ----------
    sequence_map, ion_map, peptide_map
        See module docstring
    placement_map : dict
        Peptide id → modification placements that were fragmented
    precursors : dict
        Peptide id → (unrounded precursor m/z, window ordinal or -1)
    peptides : dict
        Peptide id → Peptide, in insertion order
    decoy_to_target : dict
        Decoy peptide id → target peptide id (decoy maps only)
    """
    sequence_map: Dict[int, Dict[str, Set[str]]] = field(default_factory=lambda: _nested(set))
    ion_map: Dict[int, Dict[str, List[Tuple[float, str]]]] = field(default_factory=lambda: _nested(list))
    peptide_map: Dict[str, List[Tuple[str, float]]] = field(default_factory=dict)
    placement_map: Dict[str, List[ModificationList]] = field(default_factory=dict)
    precursors: Dict[str, Tuple[float, int]] = field(default_factory=dict)
    peptides: Dict[str, Peptide] = field(default_factory=dict)
    decoy_to_target: Dict[str, str] = field(default_factory=dict)
    _populations: Dict[Tuple[int, Optional[str]], IonPopulation] = field(default_factory=dict, repr=False)

    @property
    def n_ions(self) -> int:
        return sum(len(ions) for by_sequence in self.ion_map.values() for ions in by_sequence.values())

    def population(self, window: int, sequence: str, scope: str = 'window') -> IonPopulation:
        """Ions that can interfere with a fragment of ``sequence`` in ``window``.

        Parameters
        ----------
        window : int
            Precursor window ordinal (-1 groups precursors outside all windows)
        sequence : str
            Unmodified sequence of the queried peptide
        scope : str
            "window" (default): every target ion in the window.
            "peptide": only peptidoforms of the same sequence (localization only).

        Raises
        ------
        ValueError
            If scope is not recognized
        """
        if scope == 'peptide':
            key = (window, sequence)
        elif scope == 'window':
            key = (window, None)
        else:
            raise ValueError(f"Unknown interference scope: {scope}. Must be 'window' or 'peptide'")

        if key not in self._populations:
            by_sequence = self.ion_map.get(window, {})
            if scope == 'peptide':
                pairs = by_sequence.get(sequence, [])
            else:
                pairs = [pair for ions in by_sequence.values() for pair in ions]
            self._populations[key] = IonPopulation.from_pairs(pairs)
        return self._populations[key]

    def add_peptide(
        self,
        peptide: Peptide,
        placements: List[ModificationList],
        params: IonSeriesParams,
        windows: np.ndarray,
        enable_ms2_precursors: bool,
        mod_db: ModificationDatabase,
        report: AssayReport,
    ) -> None:
        """Fragment every placement of ``peptide`` and record the ions."""
        self._populations.clear()

        precursor = precursor_mz(peptide.sequence, peptide.modifications, peptide.precursor_charge, mod_db)
        window = int(window_index_numba(windows, precursor))
        rounded_precursor = round_mz(precursor, params.round_decpow)

        self.peptides[peptide.id] = peptide
        self.placement_map[peptide.id] = placements
        self.precursors[peptide.id] = (precursor, window)
        own_ions = self.peptide_map.setdefault(peptide.id, [])
        ions = self.ion_map[window][peptide.sequence]

        for placement in placements:
            label = format_peptidoform(peptide.sequence, placement)
            is_own = placement == peptide.modifications
            self.sequence_map[window][peptide.sequence].add(label)

            if enable_ms2_precursors:
                ions.append((rounded_precursor, label))
                if is_own:
                    own_ions.append((MS2_PRECURSOR_LABEL, rounded_precursor))

            ladder = ion_series(peptide.sequence, placement, peptide.precursor_charge, params, mod_db)
            if isinstance(ladder, Unsupported):
                report.drop(peptide.id, DropReason.UNSUPPORTED_CONFIGURATION, f"{label}: {ladder.reason}")
                continue

            for fragment_label, mz in ladder:
                # Fragments inside the precursor's own isolation window are unusable
                if window != NOT_IN_WINDOW and windows[window, 0] <= mz < windows[window, 1]:
                    continue
                ions.append((mz, label))
                if is_own:
                    own_ions.append((fragment_label, mz))


def build_target_map(
    exp: TargetedExperiment,
    params: IonSeriesParams,
    swathes=(),
    enable_ms2_precursors: bool = False,
    max_num_alternative_localizations: int = DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS,
    mod_db: Optional[ModificationDatabase] = None,
    report: Optional[AssayReport] = None,
) -> InSilicoMap:
    """Build the target in-silico map over all non-decoy peptides.

    Peptides that cannot be fragmented are reported as unsupported;
    peptides with more alternative localizations than
    ``max_num_alternative_localizations`` are reported and skipped.
    """
    if mod_db is None:
        mod_db = ModificationDatabase()
    if report is None:
        report = AssayReport("build_target_map")
    windows = as_window_array(swathes)
    insilico = InSilicoMap()

    targets = [peptide for peptide in exp.peptides if not peptide.decoy]
    unsupported = params.check()
    if unsupported is not None:
        logger.warning(f"Ion series configuration not supported: {unsupported.reason}")
        for peptide in targets:
            report.drop(peptide.id, DropReason.UNSUPPORTED_CONFIGURATION, unsupported.reason)
        return insilico

    for peptide in targets:
        unsupported = check_peptidoform(peptide.sequence, peptide.modifications, mod_db)
        if unsupported is not None:
            logger.debug(f"[uis] Peptide {peptide.id} skipped: {unsupported.reason}")
            report.drop(peptide.id, DropReason.UNSUPPORTED_CONFIGURATION, unsupported.reason)
            continue

        placements = combine_modifications(peptide.sequence, peptide.modifications, mod_db)
        if len(placements) > max_num_alternative_localizations:
            logger.debug(
                f"[uis] Peptide {peptide.id} skipped (too many permutations possible): "
                f"{len(placements)}"
            )
            report.drop(
                peptide.id, DropReason.TOO_MANY_LOCALIZATIONS,
                f"{len(placements)} alternative localizations > {max_num_alternative_localizations}",
            )
            continue

        insilico.add_peptide(peptide, placements, params, windows, enable_ms2_precursors, mod_db, report)

    logger.info(
        f"✓ Target in-silico map: {len(insilico.peptide_map):,} peptides, {insilico.n_ions:,} ions"
    )
    return insilico


def build_decoy_map(
    assignments: Mapping[str, DecoyAssignment],
    params: IonSeriesParams,
    swathes=(),
    enable_ms2_precursors: bool = False,
    mod_db: Optional[ModificationDatabase] = None,
    report: Optional[AssayReport] = None,
) -> InSilicoMap:
    """Build the decoy in-silico map from synthesized decoys.

    Uses the same fragmentation and window filtering as the target map and
    records which target each decoy stands in for, so decoy ions can be
    checked against the target population.
    """
    if mod_db is None:
        mod_db = ModificationDatabase()
    if report is None:
        report = AssayReport("build_decoy_map")
    windows = as_window_array(swathes)
    insilico = InSilicoMap()

    for target_id, assignment in assignments.items():
        decoy = assignment.decoy
        insilico.decoy_to_target[decoy.id] = target_id
        insilico.add_peptide(decoy, assignment.placements, params, windows, enable_ms2_precursors, mod_db, report)

    logger.info(
        f"✓ Decoy in-silico map: {len(insilico.peptide_map):,} peptides, {insilico.n_ions:,} ions"
    )
    return insilico
