"""Tests for convenience wrapper functions.

Tests the peptidoform ion series wrapper and the full assay generation
pipeline on a small library.
"""

import pytest

from alphaassay.convenience import generate_assays, peptidoform_ion_series


class TestPeptidoformIonSeries:
    """Test the ion series wrapper."""

    def test_unmodified(self, known_fragment_mz):
        """Test ions of a plain label."""
        ladder = dict(peptidoform_ion_series("PEPTIDE", charge=1))
        assert ladder["y3^1"] == known_fragment_mz["y3^1"]
        assert ladder["b1^1"] == known_fragment_mz["b1^1"]

    def test_modified(self):
        """Test a bracketed modification shifts the ladder."""
        plain = dict(peptidoform_ion_series("PEPSTIDEK", charge=1))
        phospho = dict(peptidoform_ion_series("PEPS[Phospho]TIDEK", charge=1))
        assert phospho["b4^1"] == pytest.approx(plain["b4^1"] + 79.9663, abs=1e-3)

    def test_invalid_label(self):
        """Test unparseable labels raise ValueError."""
        with pytest.raises(ValueError):
            peptidoform_ion_series("PEP[Phospho")

    def test_unsupported_raises(self):
        """Test peptidoforms that cannot be fragmented raise ValueError."""
        with pytest.raises(ValueError, match="Cannot fragment"):
            peptidoform_ion_series("P[Phospho]EPTIDE")


class TestGenerateAssays:
    """Test the assay generation pipeline."""

    def test_pipeline_without_uis(self, library_experiment, swath_windows):
        """Test reannotate → restrict → detecting."""
        reports = generate_assays(library_experiment, swathes=swath_windows, max_transitions=3)
        assert [r.operation for r in reports] == [
            "reannotate_transitions", "restrict_transitions", "detecting_transitions",
        ]
        assert [t.annotation for t in library_experiment.transitions] == ["b5^1", "y5^1", "y6^1"]

    def test_pipeline_with_uis(self, library_experiment, swath_windows):
        """Test UIS transitions prefer the detecting transitions' ions."""
        reports = generate_assays(
            library_experiment, swathes=swath_windows, max_transitions=3,
            enable_uis=True, shuffle_seed=1, disable_decoy_transitions=True,
        )
        assert len(reports) == 4
        assert reports[3].n_target_assays == 1

        uis = [t for t in library_experiment.transitions if t.identifying]
        detecting = sorted(t.product_mz for t in library_experiment.transitions if t.detecting)
        assert [t.product_mz for t in uis] == detecting
