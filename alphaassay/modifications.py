"""Modification chemistry lookup and peptidoform notation.

This module answers the questions the assay generator asks about
modifications: which residues can carry a modification, what its mass
delta is, and which neutral losses it induces. It also parses and formats
peptidoform labels and modification columns from data files.

Key Features
------------
- Unimod-derived default modification catalogue
- Peptidoform labels in bracket notation, e.g. ``PEPS[Phospho]TIDE``
- Parse modification strings from data files (``Phospho@S`` / ``4``)
- Calculate neutral masses with modifications (Numba)

Examples
--------
>>> mod_db = ModificationDatabase()
>>> mod_db.is_allowed("Phospho", "S")
True
>>> parse_peptidoform("PEPS[Phospho]TIDE")
('PEPSTIDE', (('Phospho', 3),))
>>> format_peptidoform("PEPSTIDE", [("Phospho", 3)])
'PEPS[Phospho]TIDE'
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import numba

from .constants import (
    H2O_MASS,
    AA_MASSES,
    CARBAMIDOMETHYL_MASS,
    OXIDATION_MASS,
    ACETYL_MASS,
    PHOSPHO_MASS,
    DEAMIDATION_MASS,
    METHYL_MASS,
    DIMETHYL_MASS,
    GLYGLY_MASS,
)

# (modification_name, 0-based position)
ModificationList = Tuple[Tuple[str, int], ...]


# =============================================================================
# Modification Database
# =============================================================================

@dataclass(frozen=True)
class Modification:
    """A residue modification.

    Attributes
    ----------
    name : str
        Unimod-style name, e.g. "Phospho"
    mass : float
        Monoisotopic mass delta in Da
    residues : str
        One-letter codes of residues that can carry the modification
    neutral_losses : tuple of str
        Loss compositions (keys of NEUTRAL_LOSS_MASSES) induced by the modification
    """
    name: str
    mass: float
    residues: str
    neutral_losses: Tuple[str, ...] = ()


DEFAULT_MODIFICATIONS = (
    Modification("Carbamidomethyl", CARBAMIDOMETHYL_MASS, "C"),
    Modification("Oxidation", OXIDATION_MASS, "M", ("C1H4O1S1",)),
    Modification("Phospho", PHOSPHO_MASS, "STY", ("H3O4P1",)),
    Modification("Deamidation", DEAMIDATION_MASS, "NQ"),
    Modification("Acetyl", ACETYL_MASS, "K"),
    Modification("Methyl", METHYL_MASS, "KR"),
    Modification("Dimethyl", DIMETHYL_MASS, "KR"),
    Modification("GlyGly", GLYGLY_MASS, "K"),
)


class ModificationDatabase:
    """Lookup of modification masses, allowed residues and neutral losses.

    Parameters
    ----------
    modifications : iterable of Modification, optional
        Catalogue to serve. Defaults to DEFAULT_MODIFICATIONS.

    Examples
    --------
    >>> mod_db = ModificationDatabase()
    >>> mod_db.mass_delta("Oxidation")
    15.994915
    >>> mod_db.residues("Phospho")
    'STY'
    """

    def __init__(self, modifications: Optional[Iterable[Modification]] = None):
        if modifications is None:
            modifications = DEFAULT_MODIFICATIONS
        self._modifications: Dict[str, Modification] = {}
        for modification in modifications:
            self.add(modification)

    def add(self, modification: Modification) -> None:
        self._modifications[modification.name] = modification

    def __contains__(self, name: str) -> bool:
        return name in self._modifications

    def __len__(self) -> int:
        return len(self._modifications)

    def get(self, name: str) -> Modification:
        """Return the modification called ``name``.

        Raises
        ------
        KeyError
            If the modification is not in the catalogue
        """
        try:
            return self._modifications[name]
        except KeyError:
            raise KeyError(f"Unknown modification: {name}") from None

    def mass_delta(self, name: str) -> float:
        return self.get(name).mass

    def residues(self, name: str) -> str:
        return self.get(name).residues

    def neutral_losses(self, name: str) -> Tuple[str, ...]:
        return self.get(name).neutral_losses

    def is_allowed(self, name: str, residue: str) -> bool:
        """Whether ``residue`` can carry modification ``name``."""
        return name in self._modifications and residue in self._modifications[name].residues

    def validate(self, sequence: str, modifications: Iterable[Tuple[str, int]]) -> Optional[str]:
        """Check a peptidoform against the catalogue.

        Returns
        -------
        str or None
            Description of the first problem found, None if the peptidoform is valid
        """
        occupied = set()
        for name, position in modifications:
            if name not in self._modifications:
                return f"unknown modification '{name}'"
            if not 0 <= position < len(sequence):
                return f"modification '{name}' at position {position} outside sequence {sequence}"
            if not self.is_allowed(name, sequence[position]):
                return (
                    f"modification '{name}' not allowed on residue "
                    f"{sequence[position]} at position {position}"
                )
            if position in occupied:
                return f"more than one modification at position {position}"
            occupied.add(position)
        return None


# =============================================================================
# Peptidoform Notation
# =============================================================================

_PEPTIDOFORM_TOKEN = re.compile(r"([A-Z])(?:\[([^\]]+)\])?")


def normalize_modifications(modifications: Iterable[Tuple[str, int]]) -> ModificationList:
    """Return modifications as a position-sorted tuple of (name, position)."""
    return tuple(sorted(((name, int(position)) for name, position in modifications),
                        key=lambda mod: (mod[1], mod[0])))


def format_peptidoform(sequence: str, modifications: Iterable[Tuple[str, int]]) -> str:
    """Format a sequence and its modifications as a peptidoform label.

    Examples
    --------
    >>> format_peptidoform("PEPTMIDE", [("Oxidation", 4)])
    'PEPTM[Oxidation]IDE'
    """
    by_position = {position: name for name, position in modifications}
    return "".join(
        f"{aa}[{by_position[i]}]" if i in by_position else aa
        for i, aa in enumerate(sequence)
    )


def parse_peptidoform(peptidoform: str) -> Tuple[str, ModificationList]:
    """Parse a peptidoform label into sequence and modifications.

    Raises
    ------
    ValueError
        If the label contains anything other than residues and bracketed names
    """
    sequence = []
    modifications = []
    end = 0
    for match in _PEPTIDOFORM_TOKEN.finditer(peptidoform):
        if match.start() != end:
            break
        sequence.append(match.group(1))
        if match.group(2):
            modifications.append((match.group(2), len(sequence) - 1))
        end = match.end()
    if end != len(peptidoform):
        raise ValueError(f"Cannot parse peptidoform: {peptidoform}")
    return "".join(sequence), normalize_modifications(modifications)


# =============================================================================
# Modification Parsing
# =============================================================================

def parse_modifications(mods: str, mod_sites: str) -> List[Tuple[str, int]]:
    """Parse modification string into list of (mod_type, position) tuples.

    Parameters
    ----------
    mods : str
        Modification string, e.g., "Carbamidomethyl@C;Oxidation@M"
        Multiple modifications separated by semicolons
    mod_sites : str
        Modification sites (1-based positions), e.g., "3;6"

    Returns
    -------
    List[Tuple[str, int]]
        List of (modification_type, position) tuples with 0-based positions

    Examples
    --------
    >>> parse_modifications("Carbamidomethyl@C;Oxidation@M", "3;7")
    [('Carbamidomethyl', 2), ('Oxidation', 6)]

    >>> parse_modifications("", "")
    []
    """
    if not mods:
        return []

    mod_list = mods.split(";")
    site_list = str(mod_sites).split(";")

    result = []
    for mod, site in zip(mod_list, site_list):
        mod = mod.strip()
        site = site.strip()

        if "@" in mod and site.isdigit():
            mod_type = mod.split("@")[0]
            result.append((mod_type, int(site) - 1))

    return result


# =============================================================================
# Mass Calculation with Modifications
# =============================================================================

def prepare_modifications_for_numba(
    modifications: Iterable[Tuple[str, int]],
    mod_db: ModificationDatabase,
) -> np.ndarray:
    """Convert modification list to a (n_mods, 2) array of [position, mass_shift].

    Examples
    --------
    >>> prepare_modifications_for_numba([("Carbamidomethyl", 2)], ModificationDatabase())
    array([[ 2.      , 57.021464]])
    """
    modifications = list(modifications)
    result = np.zeros((len(modifications), 2), dtype=np.float64)
    for i, (mod_type, position) in enumerate(modifications):
        result[i, 0] = position
        result[i, 1] = mod_db.mass_delta(mod_type)
    return result


@numba.jit(nopython=True, cache=True)
def calculate_modified_neutral_mass(
    peptide_ord: np.ndarray,
    modifications: np.ndarray
) -> float:
    """Calculate neutral peptide mass with modifications from ord() array.

    Parameters
    ----------
    peptide_ord : np.ndarray (uint8)
        Peptide sequence as ord() values
    modifications : np.ndarray (float64)
        Modification array: shape (n_mods, 2), each row is [position, mass_shift]

    Returns
    -------
    float
        Neutral peptide mass including H2O and modifications
    """
    total = 0.0
    for i in range(len(peptide_ord)):
        total += AA_MASSES[peptide_ord[i]]

    total += H2O_MASS

    for i in range(len(modifications)):
        total += modifications[i, 1]

    return total


def compute_modified_mass(
    sequence: str,
    modifications: Iterable[Tuple[str, int]],
    mod_db: Optional[ModificationDatabase] = None,
) -> float:
    """Compute peptide neutral mass with modifications.

    Examples
    --------
    >>> compute_modified_mass("PEPTIDE", [])
    799.359964684
    """
    if mod_db is None:
        mod_db = ModificationDatabase()

    mass = sum(AA_MASSES[ord(aa)] for aa in sequence) + H2O_MASS
    for mod_type, _ in modifications:
        mass += mod_db.mass_delta(mod_type)
    return float(mass)
