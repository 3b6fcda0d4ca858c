"""Unit tests for transition reannotation, restriction and detection."""

import pytest

from alphaassay.assay.transitions import (
    detecting_transitions,
    reannotate_transitions,
    restrict_transitions,
)
from alphaassay.experiment import Peptide, TargetedExperiment, Transition
from alphaassay.report import DropReason


def _ids(exp):
    return [t.id for t in exp.transitions]


class TestReannotate:
    """Test transition annotation against theoretical ions."""

    def test_annotation(self, library_experiment):
        """Test matched transitions get theoretical values and labels."""
        report = reannotate_transitions(library_experiment)
        assert report.n_output == 4
        y5 = next(t for t in library_experiment.transitions if t.id == "t_y5")
        assert y5.annotation == "y5^1"
        assert y5.product_mz == 574.2719
        assert y5.precursor_mz == 400.6873
        assert (y5.fragment_type, y5.fragment_number, y5.fragment_charge) == ("y", 5, 1)
        assert y5.peptidoforms == ("PEPTIDE",)

    def test_unannotated_removed(self, library_experiment):
        """Test transitions without a matching ion are removed."""
        library_experiment.transitions.append(Transition("t_x", "pep1", 400.69, 999.0))
        report = reannotate_transitions(library_experiment)
        assert "t_x" not in _ids(library_experiment)
        assert report.dropped_refs(DropReason.UNANNOTATED) == ["t_x"]

    def test_precursor_mismatch(self, library_experiment):
        """Test transitions whose precursor does not match are removed."""
        library_experiment.transitions.append(Transition("t_p", "pep1", 410.0, 574.27))
        report = reannotate_transitions(library_experiment)
        assert report.dropped_refs(DropReason.PRECURSOR_MISMATCH) == ["t_p"]

    def test_unsupported_peptide(self):
        """Test peptides that cannot be fragmented drop their transitions."""
        exp = TargetedExperiment(
            peptides=[Peptide("p", "PEPTIDE", modifications=(("Bogus", 0),))],
            transitions=[Transition("t", "p", 400.0, 500.0)],
        )
        report = reannotate_transitions(exp)
        assert exp.transitions == []
        assert report.dropped_refs(DropReason.UNSUPPORTED_CONFIGURATION) == ["t"]

    def test_missing_peptide_raises(self, library_experiment):
        """Test an unknown peptide reference raises and commits nothing."""
        before = list(library_experiment.transitions)
        library_experiment.transitions.append(Transition("t_m", "nope", 400.0, 500.0))
        with pytest.raises(KeyError, match="nope"):
            reannotate_transitions(library_experiment)
        assert library_experiment.transitions[:4] == before


class TestRestrict:
    """Test m/z and window restriction."""

    def _exp(self):
        return TargetedExperiment(
            peptides=[Peptide("p", "PEPTIDE")],
            transitions=[
                Transition("in_window", "p", 400.6873, 425.2031),
                Transition("ok", "p", 400.6873, 574.2719),
                Transition("outside", "p", 520.0, 574.2719),
                Transition("low", "p", 400.6873, 376.1714),
                Transition("high", "p", 400.6873, 1300.0),
            ],
        )

    def test_with_windows(self, swath_windows):
        """Test every removal reason with windows."""
        exp = self._exp()
        report = restrict_transitions(exp, 400.0, 1200.0, swath_windows)
        assert _ids(exp) == ["ok"]
        assert report.dropped_refs(DropReason.IN_PRECURSOR_WINDOW) == ["in_window"]
        assert report.dropped_refs(DropReason.PRECURSOR_OUTSIDE_WINDOWS) == ["outside"]
        assert report.dropped_refs(DropReason.OUT_OF_RANGE) == ["low", "high"]

    def test_without_windows(self):
        """Test only the m/z limits apply without windows."""
        exp = self._exp()
        restrict_transitions(exp, 400.0, 1200.0)
        assert _ids(exp) == ["in_window", "ok", "outside"]

    def test_inclusive_limits(self):
        """Test products exactly at the limits are kept."""
        exp = TargetedExperiment(
            peptides=[Peptide("p", "PEPTIDE")],
            transitions=[Transition("a", "p", 500.0, 400.0), Transition("b", "p", 500.0, 1200.0)],
        )
        restrict_transitions(exp)
        assert _ids(exp) == ["a", "b"]


class TestDetecting:
    """Test detecting transition selection."""

    def test_top_by_intensity(self, library_experiment):
        """Test the most intense transitions are kept, in document order."""
        report = detecting_transitions(library_experiment, 1, 2)
        assert _ids(library_experiment) == ["t_y5", "t_y6"]
        assert all(t.detecting for t in library_experiment.transitions)
        assert report.n_output == 2

    def test_below_min(self, library_experiment):
        """Test peptides with too few transitions lose all of them."""
        report = detecting_transitions(library_experiment, 5, 6)
        assert library_experiment.transitions == []
        assert report.dropped_refs(DropReason.BELOW_MIN_TRANSITIONS) == ["pep1"]

    def test_ties_keep_order(self):
        """Test equal intensities keep document order."""
        exp = TargetedExperiment(
            peptides=[Peptide("p", "PEPTIDE")],
            transitions=[Transition(f"t{i}", "p", 400.0, 500.0 + i, library_intensity=5.0) for i in range(3)],
        )
        detecting_transitions(exp, 1, 2)
        assert _ids(exp) == ["t0", "t1"]

    def test_decoys_excluded(self, library_experiment):
        """Test decoy transitions are never selected."""
        library_experiment.transitions.append(
            Transition("t_d", "pep1", 400.69, 600.0, library_intensity=1e6, decoy=True)
        )
        detecting_transitions(library_experiment, 1, 6)
        assert "t_d" not in _ids(library_experiment)

    def test_invalid_limits(self, library_experiment):
        """Test min > max drops every peptide as unsupported."""
        report = detecting_transitions(library_experiment, 3, 2)
        assert library_experiment.transitions == []
        assert report.dropped_refs(DropReason.UNSUPPORTED_CONFIGURATION) == ["pep1"]
