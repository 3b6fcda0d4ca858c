"""Fragment ion generation for transition assays.

This module provides the Numba fragment kernel for a/b/c/x/y/z ions and the
labelled ion series (neutral losses, m/z rounding) used to annotate
transitions and to build in-silico ion maps.
"""

from .generator import (
    encode_peptide_to_ord,
    generate_fragment_ions,
    calculate_precursor_mz,
)

from .ladder import (
    IonSeriesParams,
    IonLabel,
    IonLadder,
    ion_series,
    precursor_mz,
    round_mz,
    parse_ion_label,
    check_peptidoform,
    annotate_product_mz,
)

__all__ = [
    'encode_peptide_to_ord',
    'generate_fragment_ions',
    'calculate_precursor_mz',
    'IonSeriesParams',
    'IonLabel',
    'IonLadder',
    'ion_series',
    'precursor_mz',
    'round_mz',
    'parse_ion_label',
    'check_peptidoform',
    'annotate_product_mz',
]
