"""Unit tests for the modifications module.

Covers the modification catalogue, peptidoform notation, data-file parsing
and modified mass calculation.
"""

import numpy as np
import pytest

from alphaassay.constants import (
    H2O_MASS,
    PROTON_MASS,
    AA_MASSES_DICT,
    CARBAMIDOMETHYL_MASS,
    OXIDATION_MASS,
    PHOSPHO_MASS,
    validate_constants,
)
from alphaassay.modifications import (
    Modification,
    ModificationDatabase,
    parse_modifications,
    parse_peptidoform,
    format_peptidoform,
    normalize_modifications,
    compute_modified_mass,
    prepare_modifications_for_numba,
    calculate_modified_neutral_mass,
)
from alphaassay.fragments.generator import encode_peptide_to_ord


class TestConstants:
    """Test physical constants are correct."""

    def test_validate_constants(self):
        """Test the built-in sanity check passes."""
        validate_constants()

    def test_proton_mass_correct(self):
        """Test that PROTON_MASS is the proton, not the hydrogen atom."""
        assert abs(PROTON_MASS - 1.007276466622) < 1e-10


class TestModificationDatabase:
    """Test modification catalogue lookups."""

    def test_default_catalogue(self, mod_db):
        """Test common modifications are present."""
        for name in ("Carbamidomethyl", "Oxidation", "Phospho", "Deamidation", "Acetyl"):
            assert name in mod_db

    def test_mass_delta(self, mod_db):
        """Test mass deltas match the constants."""
        assert mod_db.mass_delta("Phospho") == PHOSPHO_MASS
        assert mod_db.mass_delta("Oxidation") == OXIDATION_MASS

    def test_allowed_residues(self, mod_db):
        """Test residue specificity."""
        assert mod_db.is_allowed("Phospho", "S")
        assert mod_db.is_allowed("Phospho", "Y")
        assert not mod_db.is_allowed("Phospho", "K")
        assert not mod_db.is_allowed("Bogus", "S")

    def test_neutral_losses(self, mod_db):
        """Test modification-specific losses."""
        assert mod_db.neutral_losses("Phospho") == ("H3O4P1",)
        assert mod_db.neutral_losses("Oxidation") == ("C1H4O1S1",)
        assert mod_db.neutral_losses("Carbamidomethyl") == ()

    def test_unknown_modification_raises(self, mod_db):
        """Test that an unknown name raises KeyError with the name."""
        with pytest.raises(KeyError, match="Bogus"):
            mod_db.get("Bogus")

    def test_custom_catalogue(self):
        """Test a user-supplied catalogue replaces the default."""
        mod_db = ModificationDatabase([Modification("Label", 8.0142, "K")])
        assert len(mod_db) == 1
        assert mod_db.residues("Label") == "K"
        assert "Phospho" not in mod_db

    def test_validate(self, mod_db):
        """Test peptidoform validation messages."""
        assert mod_db.validate("PEPSK", [("Phospho", 3)]) is None
        assert "unknown" in mod_db.validate("PEPSK", [("Bogus", 3)])
        assert "not allowed" in mod_db.validate("PEPSK", [("Phospho", 4)])
        assert "outside" in mod_db.validate("PEPSK", [("Phospho", 9)])
        assert "more than one" in mod_db.validate("PEPKK", [("Acetyl", 3), ("Methyl", 3)])


class TestPeptidoformNotation:
    """Test peptidoform labels."""

    def test_format(self):
        """Test bracket notation."""
        assert format_peptidoform("PEPSTIDE", [("Phospho", 3)]) == "PEPS[Phospho]TIDE"
        assert format_peptidoform("PEPTIDE", []) == "PEPTIDE"

    def test_parse(self):
        """Test parsing a label with two modifications."""
        sequence, mods = parse_peptidoform("M[Oxidation]PEPS[Phospho]K")
        assert sequence == "MPEPSK"
        assert mods == (("Oxidation", 0), ("Phospho", 4))

    def test_parse_format_consistent(self):
        """Test that formatting a parsed label gives the label back."""
        label = "AC[Carbamidomethyl]DEFGHIK"
        assert format_peptidoform(*parse_peptidoform(label)) == label

    def test_parse_invalid(self):
        """Test malformed labels raise ValueError."""
        with pytest.raises(ValueError):
            parse_peptidoform("PEP[Phospho")
        with pytest.raises(ValueError):
            parse_peptidoform("pep")

    def test_normalize_sorts_by_position(self):
        """Test normalization orders modifications by position."""
        assert normalize_modifications([("Phospho", 5), ("Oxidation", 1)]) == (
            ("Oxidation", 1), ("Phospho", 5)
        )


class TestParseModifications:
    """Test modification parsing functionality."""

    def test_empty_modifications(self):
        """Test parsing empty modification strings."""
        assert parse_modifications("", "") == []
        assert parse_modifications(None, "") == []
        assert parse_modifications("", "1") == []

    def test_single_modification(self):
        """Test parsing single modification."""
        result = parse_modifications("Carbamidomethyl@C", "3")
        assert result == [("Carbamidomethyl", 2)]  # 0-based position

    def test_multiple_modifications(self):
        """Test parsing multiple modifications."""
        result = parse_modifications("Carbamidomethyl@C;Oxidation@M", "3;6")
        assert result == [("Carbamidomethyl", 2), ("Oxidation", 5)]

    def test_invalid_format(self):
        """Test handling of invalid modification format."""
        # Missing @ symbol
        assert parse_modifications("Carbamidomethyl", "3") == []
        # Non-numeric site
        assert parse_modifications("Carbamidomethyl@C", "abc") == []

    def test_quoted_sites_rejected(self):
        """Test sites must be plain digits."""
        assert parse_modifications("Oxidation@M", "b'5'") == []

    def test_whitespace_handling(self):
        """Test handling of whitespace in modifications."""
        result = parse_modifications(" Carbamidomethyl@C ; Oxidation@M ", " 3 ; 6 ")
        assert result == [("Carbamidomethyl", 2), ("Oxidation", 5)]


class TestComputeModifiedMass:
    """Test modified mass calculation."""

    def test_unmodified_peptide(self):
        """Test mass calculation for unmodified peptide."""
        sequence = "PEPTIDE"
        mass = compute_modified_mass(sequence, [])
        expected = sum(AA_MASSES_DICT[aa] for aa in sequence) + H2O_MASS
        assert abs(mass - expected) < 0.001

    def test_single_carbamidomethyl(self):
        """Test mass with single carbamidomethyl modification."""
        sequence = "PEPTCIDE"
        mass = compute_modified_mass(sequence, [("Carbamidomethyl", 4)])
        expected = sum(AA_MASSES_DICT[aa] for aa in sequence) + H2O_MASS + CARBAMIDOMETHYL_MASS
        assert abs(mass - expected) < 0.001

    def test_numba_matches_python(self, mod_db):
        """Test Numba mass kernel agrees with the Python wrapper."""
        sequence = "CMPTCMDE"
        mods = [("Carbamidomethyl", 0), ("Oxidation", 1), ("Carbamidomethyl", 4), ("Oxidation", 5)]
        numba_mass = calculate_modified_neutral_mass(
            encode_peptide_to_ord(sequence), prepare_modifications_for_numba(mods, mod_db)
        )
        assert abs(numba_mass - compute_modified_mass(sequence, mods, mod_db)) < 1e-6

    def test_prepare_modifications_array(self, mod_db):
        """Test the (n, 2) position / mass-shift array."""
        arr = prepare_modifications_for_numba([("Oxidation", 3)], mod_db)
        assert arr.shape == (1, 2)
        assert arr[0, 0] == 3
        assert np.isclose(arr[0, 1], OXIDATION_MASS)

    def test_empty_modifications_array(self, mod_db):
        """Test unmodified peptides give an empty (0, 2) array."""
        assert prepare_modifications_for_numba([], mod_db).shape == (0, 2)
