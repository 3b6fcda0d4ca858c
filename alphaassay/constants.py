"""Physical constants, residue masses and neutral-loss catalogue for assay generation.

This module provides all physical constants, amino acid masses, neutral loss
compositions and assay-generation defaults used throughout alphaassay. All
values are sourced from NIST, Unimod or established proteomics standards.

Constants are provided in both dictionary and ord()-indexed array formats
for compatibility with both standard Python and Numba JIT-compiled code.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- ord()-indexed AA_MASSES array for high-performance Numba code
- Ion type offsets for the a/b/c and x/y/z series
- Unspecific (H2O1, H3N1, C1H2N2, C1H2N1O1) and specific neutral losses
- Default settings for transition annotation and UIS generation

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- IUPAC amino acid masses: https://www.unimod.org/masses.html
- Unimod modification masses: https://www.unimod.org/modifications_list.php
"""

import numpy as np

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# Electron mass
# Source: NIST 2018 CODATA
ELECTRON_MASS = 0.000548579909  # Da

# Hydrogen atom mass (proton + electron)
H_ATOM_MASS = 1.00782503223  # Da

# Water mass (H2O)
# Calculated: 2*1.007825 + 15.994915 = 18.010564684
H2O_MASS = 18.010564684  # Da

# Ammonia mass (NH3)
# Calculated: 14.003074 + 3*1.007825 = 17.026549101
NH3_MASS = 17.026549101  # Da

# Carbon monoxide mass (CO)
# Calculated: 12.000000 + 15.994915 = 27.994914620
CO_MASS = 27.994914620  # Da

# =============================================================================
# Ion Type Offsets (neutral fragment mass relative to residue sum)
# =============================================================================

# N-terminal series: residue sum of the first n residues
# b = sum, a = b - CO, c = b + NH3
B_ION_OFFSET = 0.0
A_ION_OFFSET = -CO_MASS
C_ION_OFFSET = NH3_MASS

# C-terminal series: residue sum of the last n residues
# y = sum + H2O, x = y + CO - 2H, z = y - NH3
Y_ION_OFFSET = H2O_MASS
X_ION_OFFSET = H2O_MASS + CO_MASS - 2 * H_ATOM_MASS
Z_ION_OFFSET = H2O_MASS - NH3_MASS

# Fragment type codes used inside Numba kernels (0=b, 1=y kept stable)
FRAGMENT_TYPE_CODES = {
    'b': 0,
    'y': 1,
    'a': 2,
    'c': 3,
    'x': 4,
    'z': 5,
}
FRAGMENT_TYPE_NAMES = {code: name for name, code in FRAGMENT_TYPE_CODES.items()}

N_TERMINAL_TYPES = frozenset('abc')
C_TERMINAL_TYPES = frozenset('xyz')

# Indexed by fragment type code
ION_OFFSETS = np.array([
    B_ION_OFFSET,
    Y_ION_OFFSET,
    A_ION_OFFSET,
    C_ION_OFFSET,
    X_ION_OFFSET,
    Z_ION_OFFSET,
], dtype=np.float64)

# =============================================================================
# Amino Acid Monoisotopic Masses (Da)
# =============================================================================

# Standard 20 amino acids (unmodified residues)
# Source: IUPAC/Unimod mass tables
AA_MASSES_DICT = {
    'A': 71.037114,   # Alanine
    'R': 156.101111,  # Arginine
    'N': 114.042927,  # Asparagine
    'D': 115.026943,  # Aspartic acid
    'C': 103.009185,  # Cysteine (unmodified)
    'E': 129.042593,  # Glutamic acid
    'Q': 128.058578,  # Glutamine
    'G': 57.021464,   # Glycine
    'H': 137.058912,  # Histidine
    'I': 113.084064,  # Isoleucine
    'L': 113.084064,  # Leucine
    'K': 128.094963,  # Lysine
    'M': 131.040485,  # Methionine
    'F': 147.068414,  # Phenylalanine
    'P': 97.052764,   # Proline
    'S': 87.032028,   # Serine
    'T': 101.047679,  # Threonine
    'W': 186.079313,  # Tryptophan
    'Y': 163.063320,  # Tyrosine
    'V': 99.068414,   # Valine
}

# Non-standard amino acids mapped to the mass of their closest equivalent
AA_MASSES_NONSTANDARD = {
    'X': 113.084064,  # Unknown → Leu/Ile (most common)
    'Z': 128.058578,  # Glu/Gln → Gln
    'B': 114.042927,  # Asp/Asn → Asn
    'J': 113.084064,  # Leu/Ile → Leu
    'U': 103.009185,  # Selenocysteine → Cys (similar mass)
    'O': 131.040485,  # Pyrrolysine → Met (closest mass)
}

# =============================================================================
# ord()-Indexed Arrays for Numba
# =============================================================================

# Access via: AA_MASSES[ord('A')] → 71.037114
# Unknown characters stay at 0.0 and are rejected before fragment generation
AA_MASSES = np.zeros(256, dtype=np.float64)

for aa, mass in AA_MASSES_DICT.items():
    AA_MASSES[ord(aa)] = mass

for aa, mass in AA_MASSES_NONSTANDARD.items():
    AA_MASSES[ord(aa)] = mass

# =============================================================================
# Common Modification Masses
# =============================================================================

# Carbamidomethylation of Cysteine (Unimod:4)
CARBAMIDOMETHYL_MASS = 57.021464

# Oxidation of Methionine (Unimod:35)
OXIDATION_MASS = 15.994915

# Acetylation (Unimod:1)
ACETYL_MASS = 42.010565

# Phosphorylation (Unimod:21)
PHOSPHO_MASS = 79.966331

# Deamidation (Unimod:7)
DEAMIDATION_MASS = 0.984016

# Methylation (Unimod:34)
METHYL_MASS = 14.015650

# Dimethylation (Unimod:36)
DIMETHYL_MASS = 28.031300

# Ubiquitin remnant (Unimod:121)
GLYGLY_MASS = 114.042927

# =============================================================================
# Neutral Losses
# =============================================================================

# Loss compositions in Hill-like element-count notation (as used in labels)
NEUTRAL_LOSS_MASSES = {
    'H2O1': H2O_MASS,
    'H3N1': NH3_MASS,
    'C1H2N2': 42.021798,     # cyanamide-type loss (Arg side chain)
    'C1H2N1O1': 44.013639,   # formamide-type loss
    'C1H4O1S1': 63.998285,   # methanesulfenic acid from Met sulfoxide
    'H3O4P1': 97.976896,     # phosphoric acid
}

# Fixed catalogue considered when unspecific losses are enabled
UNSPECIFIC_LOSSES = ('H2O1', 'H3N1', 'C1H2N2', 'C1H2N1O1')

# Residue-specific losses applied when the fragment contains the residue
RESIDUE_LOSSES = {
    'S': ('H2O1',),
    'T': ('H2O1',),
    'E': ('H2O1',),
    'D': ('H2O1',),
    'K': ('H3N1',),
    'R': ('H3N1',),
    'N': ('H3N1',),
    'Q': ('H3N1',),
}

# =============================================================================
# Assay Generation Defaults
# =============================================================================

# Product m/z rounding: round to 10**DEFAULT_ROUND_DECPOW Th
DEFAULT_ROUND_DECPOW = -4

# Cap on the number of alternative localizations per peptide
DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS = 20

# -1 selects a time-derived (non-reproducible) shuffle seed
DEFAULT_SHUFFLE_SEED = -1

# Transitions per assay
DEFAULT_MIN_TRANSITIONS = 1
DEFAULT_MAX_TRANSITIONS = 6

# Annotation / UIS tolerances (Th)
DEFAULT_PRECURSOR_MZ_THRESHOLD = 0.025
DEFAULT_PRODUCT_MZ_THRESHOLD = 0.025
DEFAULT_UIS_MZ_THRESHOLD = 0.05

# Product m/z limits for restriction (Th)
DEFAULT_LOWER_MZ_LIMIT = 400.0
DEFAULT_UPPER_MZ_LIMIT = 1200.0

# Label of the precursor ion when MS2 precursors are considered
MS2_PRECURSOR_LABEL = 'MS2_Precursor_i0'

# Prefix for synthesized decoy identifiers
DECOY_PREFIX = 'DECOY_'

# =============================================================================
# Mass Accuracy Validation
# =============================================================================

def validate_constants():
    """Validate that constants are physically reasonable.

    Raises AssertionError if any constant is out of expected range.
    This is a sanity check to catch copy-paste errors or typos.
    """
    # Proton mass should be ~1.007276, NOT 1.007825 (hydrogen atom)
    assert 1.0072 < PROTON_MASS < 1.0073, f"PROTON_MASS is wrong: {PROTON_MASS}"

    assert 0.0005 < ELECTRON_MASS < 0.0006, f"ELECTRON_MASS is wrong: {ELECTRON_MASS}"

    assert 18.00 < H2O_MASS < 18.02, f"H2O_MASS is wrong: {H2O_MASS}"

    # Hydrogen atom = proton + electron (within floating point precision)
    assert abs(H_ATOM_MASS - (PROTON_MASS + ELECTRON_MASS)) < 0.000001, \
        f"H atom mass inconsistent: {H_ATOM_MASS}"

    for aa, mass in AA_MASSES_DICT.items():
        assert mass > 50.0, f"AA {aa} mass is too low: {mass}"
        assert mass < 250.0, f"AA {aa} mass is too high: {mass}"

    for loss in UNSPECIFIC_LOSSES:
        assert loss in NEUTRAL_LOSS_MASSES, f"Unspecific loss {loss} has no mass"

    print("✓ All constants validated successfully")
