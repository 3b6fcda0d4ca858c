"""Pytest configuration for AlphaAssay tests.

This module provides common fixtures and configuration for all tests.
Experiments are built in memory; no files are read or written.
"""

import numpy as np
import pytest

from alphaassay.experiment import Peptide, Protein, TargetedExperiment, Transition
from alphaassay.modifications import ModificationDatabase


@pytest.fixture
def mod_db():
    """Default modification catalogue."""
    return ModificationDatabase()


@pytest.fixture
def simple_peptide():
    """Simple peptide for basic tests."""
    return "PEPTIDE"


@pytest.fixture
def known_fragment_mz():
    """Singly charged b/y ions of PEPTIDE (rounded to 1e-4 Th).

    Calculated from monoisotopic residue masses, H2O and the proton mass.
    """
    return {
        "b1^1": 98.0600,
        "b2^1": 227.1026,
        "b3^1": 324.1554,
        "b4^1": 425.2031,
        "y1^1": 148.0604,
        "y2^1": 263.0874,
        "y3^1": 376.1714,
        "y4^1": 477.2191,
        "y5^1": 574.2719,
    }


@pytest.fixture
def swath_windows():
    """Two adjacent precursor isolation windows."""
    return [(400.0, 450.0), (450.0, 500.0)]


@pytest.fixture
def peptide_experiment():
    """PEPTIDE (precursor 400.6873, z=2) and PEPTIDEK (464.7347, z=2)."""
    return TargetedExperiment(
        proteins=[Protein("P1"), Protein("P2")],
        peptides=[
            Peptide("pep1", "PEPTIDE", charge=2, protein_refs=["P1"]),
            Peptide("pep2", "PEPTIDEK", charge=2, protein_refs=["P2"]),
        ],
    )


@pytest.fixture
def phospho_experiment():
    """Two phospho-localization isoforms of PEPSTIDEK, singly charged."""
    return TargetedExperiment(
        proteins=[Protein("P1")],
        peptides=[
            Peptide.from_peptidoform("pS", "PEPS[Phospho]TIDEK", charge=1, protein_refs=["P1"]),
            Peptide.from_peptidoform("pT", "PEPST[Phospho]IDEK", charge=1, protein_refs=["P1"]),
        ],
    )


@pytest.fixture
def library_experiment():
    """PEPTIDE (z=2) with four library transitions above 450 Th."""
    transitions = [
        Transition("t_b5", "pep1", 400.69, 538.29, library_intensity=20.0),
        Transition("t_y4", "pep1", 400.69, 477.22, library_intensity=5.0),
        Transition("t_y5", "pep1", 400.69, 574.27, library_intensity=100.0),
        Transition("t_y6", "pep1", 400.69, 703.31, library_intensity=50.0),
    ]
    return TargetedExperiment(
        proteins=[Protein("P1")],
        peptides=[Peptide("pep1", "PEPTIDE", charge=2, protein_refs=["P1"])],
        transitions=transitions,
    )


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
