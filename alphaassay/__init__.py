"""AlphaAssay - Numba-accelerated targeted proteomics assay generation.

Builds transition assays for targeted / DIA (SWATH) acquisition: annotation
of library transitions against theoretical fragment ions, window and m/z
restriction, detecting transition selection, and unique ion signature (UIS)
transitions that discriminate alternative modification localizations,
together with shuffled decoys.
"""

__version__ = "0.1.0"

# Import main submodules for convenient access
from alphaassay import constants
from alphaassay import modifications
from alphaassay import experiment
from alphaassay import report
from alphaassay import fragments
from alphaassay import assay
from alphaassay import convenience

__all__ = [
    "constants",
    "modifications",
    "experiment",
    "report",
    "fragments",
    "assay",
    "convenience",
]
