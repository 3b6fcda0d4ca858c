"""Fragment ion ladder generation with Numba JIT compilation.

This module generates theoretical a/b/c and x/y/z fragment ions for
(modified) peptide sequences. It is the inner loop of in-silico assay
generation, called once per peptidoform.

Key optimizations:
1. Numba JIT compilation for C-level performance
2. ord() encoding for string-to-array conversion (no string operations in Numba)
3. Pre-allocated arrays (no dynamic memory allocation)
4. Cumulative residue masses shared by all ion series
"""

import numpy as np
import numba
from typing import Tuple

from ..constants import (
    PROTON_MASS,
    AA_MASSES,
    ION_OFFSETS,
)


# =============================================================================
# Helper Functions
# =============================================================================

def encode_peptide_to_ord(peptide: str) -> np.ndarray:
    """Encode peptide string to ord() array for Numba processing.

    Parameters
    ----------
    peptide : str
        Peptide sequence (uppercase one-letter codes)

    Returns
    -------
    peptide_ord : np.ndarray (uint8)
        Array of ord() values for each amino acid

    Examples
    --------
    >>> encode_peptide_to_ord("PEPTIDE")
    array([80, 69, 80, 84, 73, 68, 69], dtype=uint8)
    """
    return np.array([ord(c) for c in peptide], dtype=np.uint8)


# =============================================================================
# Core Fragment Generation (Numba-Compiled)
# =============================================================================

@numba.jit(nopython=True, cache=True)
def generate_fragment_ions(
    peptide_ord: np.ndarray,
    modifications: np.ndarray,
    precursor_charge: int,
    fragment_types: np.ndarray,
    fragment_charges: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Generate theoretical fragment m/z values (Numba-compiled).

    Parameters
    ----------
    peptide_ord : np.ndarray (uint8)
        Peptide sequence as ord() values (use encode_peptide_to_ord())
    modifications : np.ndarray (float64)
        Shape (n_mods, 2), each row [position, mass_shift]
        (use prepare_modifications_for_numba())
    precursor_charge : int
        Precursor charge state; fragment charges above it are skipped
    fragment_types : np.ndarray (int64)
        Fragment type codes (see FRAGMENT_TYPE_CODES: 0=b, 1=y, 2=a, 3=c, 4=x, 5=z)
    fragment_charges : np.ndarray (int64)
        Fragment charge states to generate

    Returns
    -------
    fragment_mz : np.ndarray (float64)
        m/z values of all fragments
    fragment_type : np.ndarray (uint8)
        Fragment type code
    fragment_position : np.ndarray (uint16)
        Fragment position (number of residues in the fragment)
    fragment_charge : np.ndarray (uint8)
        Fragment charge state

    Notes
    -----
    - Only generates fragments where charge <= position (physical constraint)
    - For peptide of length n, generates fragments at positions 1 to n-1
    - Output order: fragment type, then position, then charge
    - m/z is kept in float64 because it is rounded to 1e-4 Th downstream
    """
    peptide_length = len(peptide_ord)
    n_positions = peptide_length - 1
    if n_positions < 1:
        n_positions = 0

    max_fragments = n_positions * len(fragment_types) * len(fragment_charges)

    fragment_mz = np.empty(max_fragments, dtype=np.float64)
    fragment_type = np.empty(max_fragments, dtype=np.uint8)
    fragment_position = np.empty(max_fragments, dtype=np.uint16)
    fragment_charge = np.empty(max_fragments, dtype=np.uint8)

    if n_positions == 0:
        return fragment_mz, fragment_type, fragment_position, fragment_charge

    # Residue masses including modification shifts
    residue_masses = np.empty(peptide_length, dtype=np.float64)
    for i in range(peptide_length):
        residue_masses[i] = AA_MASSES[peptide_ord[i]]
    for j in range(len(modifications)):
        residue_masses[int(modifications[j, 0])] += modifications[j, 1]

    # Forward cumulative sum for N-terminal series
    cumsum_forward = np.empty(peptide_length, dtype=np.float64)
    cumsum_forward[0] = residue_masses[0]
    for i in range(1, peptide_length):
        cumsum_forward[i] = cumsum_forward[i-1] + residue_masses[i]

    # Backward cumulative sum for C-terminal series
    cumsum_backward = np.empty(peptide_length, dtype=np.float64)
    cumsum_backward[peptide_length-1] = residue_masses[peptide_length-1]
    for i in range(peptide_length-2, -1, -1):
        cumsum_backward[i] = cumsum_backward[i+1] + residue_masses[i]

    idx = 0
    for frag_type in fragment_types:
        if frag_type < 0 or frag_type >= len(ION_OFFSETS):
            continue
        offset = ION_OFFSETS[frag_type]
        # b, a, c are N-terminal; y, x, z are C-terminal
        n_terminal = frag_type == 0 or frag_type == 2 or frag_type == 3

        for position in range(1, n_positions + 1):
            for charge in fragment_charges:
                if charge > position or charge > precursor_charge or charge < 1:
                    continue

                if n_terminal:
                    fragment_mass = cumsum_forward[position - 1] + offset
                else:
                    fragment_mass = cumsum_backward[peptide_length - position] + offset

                fragment_mz[idx] = (fragment_mass + charge * PROTON_MASS) / charge
                fragment_type[idx] = frag_type
                fragment_position[idx] = position
                fragment_charge[idx] = charge
                idx += 1

    return (
        fragment_mz[:idx],
        fragment_type[:idx],
        fragment_position[:idx],
        fragment_charge[:idx]
    )


@numba.jit(nopython=True, cache=True)
def calculate_precursor_mz(neutral_mass: float, charge: int) -> float:
    """Calculate precursor m/z from neutral mass.

    Examples
    --------
    >>> calculate_precursor_mz(1000.5, 2)
    501.257276466622
    """
    return (neutral_mass + charge * PROTON_MASS) / charge
