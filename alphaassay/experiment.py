"""In-memory targeted experiment: proteins, peptides and transitions.

The assay generator reads and rewrites a TargetedExperiment. Proteins and
peptides are identity records; transitions are the measurable
(precursor, product) pairs grouped per peptide.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .modifications import (
    ModificationList,
    format_peptidoform,
    normalize_modifications,
    parse_modifications,
    parse_peptidoform,
)


@dataclass
class Protein:
    """Protein identity record."""
    id: str
    sequence: str = ""
    description: str = ""


@dataclass
class Peptide:
    """Peptide with site-localized modifications.

    Attributes
    ----------
    id : str
        Unique peptide reference used by transitions
    sequence : str
        Unmodified amino acid sequence
    modifications : tuple of (str, int)
        (modification_name, 0-based position), sorted by position
    charge : int
        Precursor charge state
    protein_refs : list of str
        Proteins this peptide belongs to
    """
    id: str
    sequence: str
    modifications: ModificationList = ()
    charge: int = 2
    protein_refs: List[str] = field(default_factory=list)
    retention_time: float = math.nan
    decoy: bool = False

    def __post_init__(self):
        self.modifications = normalize_modifications(self.modifications)

    @property
    def peptidoform(self) -> str:
        return format_peptidoform(self.sequence, self.modifications)

    @property
    def precursor_charge(self) -> int:
        return self.charge if self.charge and self.charge > 0 else 1

    @classmethod
    def from_peptidoform(cls, id: str, peptidoform: str, **kwargs) -> "Peptide":
        """Create a peptide from a label such as ``PEPS[Phospho]TIDEK``."""
        sequence, modifications = parse_peptidoform(peptidoform)
        return cls(id=id, sequence=sequence, modifications=modifications, **kwargs)

    @classmethod
    def from_mod_strings(cls, id: str, sequence: str, mods: str, mod_sites: str, **kwargs) -> "Peptide":
        """Create a peptide from ``"Phospho@S;Oxidation@M"`` / ``"4;7"`` columns."""
        return cls(id=id, sequence=sequence,
                   modifications=tuple(parse_modifications(mods, mod_sites)), **kwargs)


@dataclass
class Transition:
    """A (precursor, product) pair tracking one peptide.

    ``annotation`` holds the fragment label (``y5^1``, ``b3-H2O1^2``) and is
    empty for transitions that have not been annotated.
    """
    id: str
    peptide_ref: str
    precursor_mz: float
    product_mz: float
    library_intensity: float = 0.0
    annotation: str = ""
    fragment_type: str = ""
    fragment_number: int = 0
    fragment_charge: int = 0
    fragment_loss: str = ""
    decoy: bool = False
    detecting: bool = True
    identifying: bool = False
    quantifying: bool = True
    peptidoforms: Tuple[str, ...] = ()

    @property
    def is_annotated(self) -> bool:
        return bool(self.annotation)


class TargetedExperiment:
    """Ordered collections of proteins, peptides and transitions.

    The collections are owned by the caller. Assay generation functions
    replace ``transitions`` in one assignment at the end of each call.
    """

    def __init__(
        self,
        proteins: Optional[Iterable[Protein]] = None,
        peptides: Optional[Iterable[Peptide]] = None,
        transitions: Optional[Iterable[Transition]] = None,
    ):
        self.proteins: List[Protein] = []
        self.peptides: List[Peptide] = []
        self.transitions: List[Transition] = list(transitions or [])
        self._peptide_index: Dict[str, int] = {}
        self._protein_index: Dict[str, int] = {}
        for protein in proteins or []:
            self.add_protein(protein)
        for peptide in peptides or []:
            self.add_peptide(peptide)

    def __repr__(self) -> str:
        return (
            f"TargetedExperiment({len(self.proteins)} proteins, "
            f"{len(self.peptides)} peptides, {len(self.transitions)} transitions)"
        )

    def add_protein(self, protein: Protein) -> None:
        if protein.id in self._protein_index:
            raise ValueError(f"Duplicate protein id: {protein.id}")
        self._protein_index[protein.id] = len(self.proteins)
        self.proteins.append(protein)

    def add_peptide(self, peptide: Peptide) -> None:
        if peptide.id in self._peptide_index:
            raise ValueError(f"Duplicate peptide id: {peptide.id}")
        self._peptide_index[peptide.id] = len(self.peptides)
        self.peptides.append(peptide)

    def has_protein(self, ref: str) -> bool:
        return ref in self._protein_index

    def has_peptide(self, ref: str) -> bool:
        return ref in self._peptide_index

    def get_protein(self, ref: str) -> Protein:
        try:
            return self.proteins[self._protein_index[ref]]
        except KeyError:
            raise KeyError(f"Unknown protein reference: {ref}") from None

    def get_peptide(self, ref: str) -> Peptide:
        try:
            return self.peptides[self._peptide_index[ref]]
        except KeyError:
            raise KeyError(f"Unknown peptide reference: {ref}") from None

    def set_transitions(self, transitions: Iterable[Transition]) -> None:
        self.transitions = list(transitions)

    def transitions_by_peptide(self) -> "OrderedDict[str, List[Transition]]":
        """Group transitions by peptide reference, in first-seen order."""
        groups: "OrderedDict[str, List[Transition]]" = OrderedDict()
        for transition in self.transitions:
            groups.setdefault(transition.peptide_ref, []).append(transition)
        return groups
