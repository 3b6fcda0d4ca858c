"""Outcome reporting for assay generation.

Per-peptide and per-transition problems do not raise. They are collected as
DroppedItem entries in an AssayReport so the caller can decide whether to
relax parameters. Configurations a code path does not implement are returned
as an Unsupported value instead of being thrown.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class DropReason(Enum):
    """Why a peptide assay or a transition was removed."""
    EMPTY_AFTER_FILTERING = "empty_after_filtering"
    BELOW_MIN_TRANSITIONS = "below_min_transitions"
    UNSUPPORTED_CONFIGURATION = "unsupported_configuration"
    TOO_MANY_LOCALIZATIONS = "too_many_localizations"
    UNANNOTATED = "unannotated"
    PRECURSOR_MISMATCH = "precursor_mismatch"
    OUT_OF_RANGE = "out_of_range"
    IN_PRECURSOR_WINDOW = "in_precursor_window"
    PRECURSOR_OUTSIDE_WINDOWS = "precursor_outside_windows"


@dataclass(frozen=True)
class Unsupported:
    """Tagged outcome for a configuration a code path cannot handle."""
    reason: str


@dataclass(frozen=True)
class DroppedItem:
    """A peptide or transition removed from the output, with context."""
    ref: str
    reason: DropReason
    detail: str = ""


@dataclass
class AssayReport:
    """Summary of one orchestrator call.

    Attributes
    ----------
    operation : str
        Name of the orchestrator that produced the report
    n_input : int
        Transitions in the document before the call
    n_output : int
        Transitions in the document after the call
    n_target_assays, n_decoy_assays : int
        Assays (transition groups) emitted by UIS generation
    dropped : list of DroppedItem
        Removed peptides/transitions and why
    stages : list of str
        Completed stages, in order
    """
    operation: str
    n_input: int = 0
    n_output: int = 0
    n_target_assays: int = 0
    n_decoy_assays: int = 0
    dropped: List[DroppedItem] = field(default_factory=list)
    stages: List[str] = field(default_factory=list)

    def drop(self, ref: str, reason: DropReason, detail: str = "") -> None:
        self.dropped.append(DroppedItem(ref, reason, detail))

    def dropped_refs(self, reason: DropReason) -> List[str]:
        return [item.ref for item in self.dropped if item.reason is reason]

    def summary(self) -> Dict[DropReason, int]:
        return dict(Counter(item.reason for item in self.dropped))

    def log_summary(self, logger: logging.Logger) -> None:
        logger.info(f"✓ {self.operation}: {self.n_input:,} → {self.n_output:,} transitions")
        for reason, count in sorted(self.summary().items(), key=lambda kv: kv[0].value):
            logger.info(f"  Dropped ({reason.value}): {count:,}")
