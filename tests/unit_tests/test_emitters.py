"""Unit tests for UIS assay emitters."""

from alphaassay.assay.decoys import synthesize_decoys
from alphaassay.assay.emitters import (
    check_transition_limits,
    generate_decoy_assays,
    generate_target_assays,
    select_assay_ions,
)
from alphaassay.assay.insilico import build_decoy_map, build_target_map
from alphaassay.assay.interference import matching_peptidoforms
from alphaassay.fragments import IonSeriesParams
from alphaassay.report import AssayReport, DropReason

import pytest


class TestSelectAssayIons:
    """Test per-assay selection."""

    IONS = [("y2^1", 263.0874), ("b2^1", 227.1026), ("y1^1", 148.0604), ("b1^1", 98.06)]

    def test_ascending_mz(self):
        """Test ions are ordered by m/z and capped at max."""
        selected = select_assay_ions(self.IONS, 1, 2)
        assert selected == [("b1^1", 98.06), ("y1^1", 148.0604)]

    def test_all_or_nothing(self):
        """Test fewer ions than min gives an empty assay."""
        assert select_assay_ions(self.IONS, 5, 6) == []
        assert len(select_assay_ions(self.IONS, 4, 6)) == 4

    def test_preferred_first(self):
        """Test ions of detecting transitions are taken first."""
        selected = select_assay_ions(self.IONS, 1, 2, preferred_mz={263.0874})
        assert selected == [("y2^1", 263.0874), ("b1^1", 98.06)]

    def test_invalid_limits(self):
        """Test min > max and min < 1 give empty results."""
        assert select_assay_ions(self.IONS, 3, 2) == []
        assert select_assay_ions(self.IONS, 0, 2) == []
        assert check_transition_limits(3, 2) is not None
        assert check_transition_limits(1, 1) is None


class TestGenerateTargetAssays:
    """Test target UIS emission."""

    def test_unmodified_peptide(self, peptide_experiment, mod_db):
        """Test an unmodified peptide's ions are all unique within its own sequence."""
        peptide_experiment.peptides[0].charge = 1
        target_map = build_target_map(peptide_experiment, IonSeriesParams(('b', 'y'), (1,)), mod_db=mod_db)
        report = AssayReport("test")
        transitions = generate_target_assays(target_map, 0.05, 1, 6, interference_scope="peptide", report=report)

        pep1 = [t for t in transitions if t.peptide_ref == "pep1"]
        assert [t.annotation for t in pep1] == ["b1^1", "y1^1", "b2^1", "y2^1", "b3^1", "y3^1"]
        assert pep1[0].product_mz == 98.06
        assert all(t.identifying and not t.detecting and not t.quantifying for t in pep1)
        assert pep1[0].peptidoforms == ("PEPTIDE",)
        assert pep1[0].precursor_mz == 800.3672
        assert report.n_target_assays == 2

    def test_window_scope_default(self, peptide_experiment, mod_db):
        """Test b ions shared with PEPTIDEK are not unique in the default window scope."""
        peptide_experiment.peptides[0].charge = 1
        target_map = build_target_map(peptide_experiment, IonSeriesParams(('b', 'y'), (1,)), mod_db=mod_db)
        transitions = generate_target_assays(target_map, 0.05, 1, 6)

        pep1 = [t for t in transitions if t.peptide_ref == "pep1"]
        assert [t.annotation for t in pep1] == ["y1^1", "y2^1", "y3^1", "y4^1", "y5^1", "y6^1"]
        pep2 = [t for t in transitions if t.peptide_ref == "pep2"]
        assert not any(t.annotation.startswith("b") and t.product_mz < 700.0 for t in pep2)

    def test_localization_isoforms(self, phospho_experiment, mod_db):
        """Test only site-determining ions are UIS for phospho isoforms."""
        target_map = build_target_map(phospho_experiment, IonSeriesParams(), mod_db=mod_db)
        transitions = generate_target_assays(target_map, 0.05, 1, 6)
        by_peptide = {}
        for transition in transitions:
            by_peptide.setdefault(transition.peptide_ref, []).append(transition.annotation)
        assert sorted(by_peptide["pS"]) == ["b4^1", "y5^1"]
        assert sorted(by_peptide["pT"]) == ["b4^1", "y5^1"]

    def test_below_min_dropped(self, phospho_experiment, mod_db):
        """Test assays below min_transitions are absent and reported."""
        target_map = build_target_map(phospho_experiment, IonSeriesParams(), mod_db=mod_db)
        report = AssayReport("test")
        assert generate_target_assays(target_map, 0.05, 3, 6, report=report) == []
        assert sorted(report.dropped_refs(DropReason.BELOW_MIN_TRANSITIONS)) == ["pS", "pT"]

    def test_invalid_limits_reported(self, phospho_experiment, mod_db):
        """Test min > max drops every assay as unsupported."""
        target_map = build_target_map(phospho_experiment, IonSeriesParams(), mod_db=mod_db)
        report = AssayReport("test")
        assert generate_target_assays(target_map, 0.05, 4, 2, report=report) == []
        assert len(report.dropped_refs(DropReason.UNSUPPORTED_CONFIGURATION)) == 2

    def test_empty_after_filtering(self, mod_db):
        """Test a peptide whose ions all fall in its own window."""
        from alphaassay.experiment import Peptide, TargetedExperiment
        exp = TargetedExperiment(peptides=[Peptide("p", "PEPTIDE", charge=2)])
        target_map = build_target_map(exp, IonSeriesParams(), [(0.0, 2000.0)], mod_db=mod_db)
        report = AssayReport("test")
        assert generate_target_assays(target_map, report=report) == []
        assert report.dropped_refs(DropReason.EMPTY_AFTER_FILTERING) == ["p"]


class TestGenerateDecoyAssays:
    """Test decoy UIS emission."""

    def _maps(self, exp, mod_db, seed=42):
        params = IonSeriesParams()
        target_map = build_target_map(exp, params, mod_db=mod_db)
        assignments = synthesize_decoys(exp.peptides, target_map.placement_map, shuffle_seed=seed)
        return target_map, build_decoy_map(assignments, params, mod_db=mod_db)

    def test_decoy_ions_avoid_targets(self, phospho_experiment, mod_db):
        """Test no emitted decoy ion lies near a target ion."""
        target_map, decoy_map = self._maps(phospho_experiment, mod_db)
        transitions, peptides = generate_decoy_assays(decoy_map, target_map, 0.05, 1, 6)
        population = target_map.population(-1, "PEPSTIDEK")
        for transition in transitions:
            assert transition.decoy
            assert transition.peptide_ref.startswith("DECOY_")
            assert matching_peptidoforms(transition.product_mz, population, 0.05) == []
        assert {t.peptide_ref for t in transitions} == {p.id for p in peptides}

    def test_decoy_reference_decoy(self, phospho_experiment, mod_db):
        """Test decoy-population uniqueness as the alternative reference."""
        target_map, decoy_map = self._maps(phospho_experiment, mod_db)
        transitions, _ = generate_decoy_assays(
            decoy_map, target_map, 0.05, 1, 6, decoy_reference="decoy"
        )
        assert all(t.decoy for t in transitions)

    def test_invalid_reference(self, phospho_experiment, mod_db):
        """Test unknown reference names raise ValueError."""
        target_map, decoy_map = self._maps(phospho_experiment, mod_db)
        with pytest.raises(ValueError, match="decoy reference"):
            generate_decoy_assays(decoy_map, target_map, decoy_reference="both")
