import numpy as np
import pytest

from castep_model_core.errors import CastepModelError, SemanticExtractionError, StructuralParseError
from castep_model_core.file_processing import MsiStateMachine, ParserState, parse_msi
from castep_model_core.file_processing.msi_parser import build_attribute_table, extract_settings
from castep_model_core.models import Dialect


def test_parse_cubic_model(cubic_msi_text: str) -> None:
    model = parse_msi(cubic_msi_text)

    assert model.dialect is Dialect.MSI
    assert model.num_atoms == 1
    np.testing.assert_allclose(model.lattice.vectors, np.eye(3) * 10.0)
    assert model.atoms.element_symbols == ["C"]
    assert model.atoms.atomic_numbers.tolist() == [6]
    np.testing.assert_allclose(model.atoms.cartesian, [[5.0, 5.0, 5.0]])
    assert model.atoms.atom_ids.tolist() == [1]
    assert model.atoms.fractional == [None]
    assert model.settings.periodic_type == 100
    assert model.settings.space_group == "1 1"
    assert model.settings.cry_tolerance == 0.05
    assert model.settings.cry_display == (192, 256)


def test_state_machine_buckets(mixed_msi_text: str) -> None:
    machine = MsiStateMachine(mixed_msi_text)
    assert machine.state is ParserState.LOADED
    machine.start()
    assert machine.state is ParserState.START

    buckets = machine.analyze()
    assert machine.state is ParserState.ANALYZED
    assert buckets.num_atoms == 2
    assert buckets.num_bonds == 1
    assert len(buckets.attributes) == 6


def test_state_machine_cannot_restart(cubic_msi_text: str) -> None:
    machine = MsiStateMachine(cubic_msi_text)
    machine.analyze()
    with pytest.raises(CastepModelError):
        machine.start()


def test_field_order_does_not_matter(mixed_msi_text: str) -> None:
    canonical = """# MSI CERIUS2 DataModel File Version 4 0
(1 Model
  (A I PeriodicType 100)
  (A C SpaceGroup "1 1")
  (A D A3 (6.5 0 0))
  (A D B3 (0 6.5 0))
  (A D C3 (0 0 6.5))
  (A D CRY/TOLERANCE 0.05)
  (2 Atom
    (A C ACL "8 O")
    (A D XYZ (1.2 0 0))
    (A I Id 2)
  )
  (3 Atom
    (A C ACL "6 C")
    (A D XYZ (0.5 -2.865153883599e-05 1.0))
    (A I Id 1)
  )
  (4 Bond
    (A O Atom1 2)
    (A O Atom2 3)
  )
)
"""
    mixed = parse_msi(mixed_msi_text)
    ordered = parse_msi(canonical)

    np.testing.assert_allclose(mixed.lattice.vectors, ordered.lattice.vectors)
    assert mixed.settings == ordered.settings
    assert mixed.atoms.element_symbols == ordered.atoms.element_symbols
    assert mixed.atoms.atom_ids.tolist() == ordered.atoms.atom_ids.tolist()
    np.testing.assert_allclose(mixed.atoms.cartesian, ordered.atoms.cartesian)


def test_crlf_document(cubic_msi_text: str) -> None:
    model = parse_msi(cubic_msi_text.replace("\n", "\r\n"))
    assert model.num_atoms == 1
    np.testing.assert_allclose(model.lattice.c, [0.0, 0.0, 10.0])


def test_molecule_has_no_lattice(molecule_msi_text: str) -> None:
    model = parse_msi(molecule_msi_text)
    assert model.lattice is None
    assert not model.is_periodic
    assert model.num_atoms == 2
    assert model.settings.periodic_type == 100


def test_empty_model() -> None:
    model = parse_msi("# MSI CERIUS2 DataModel File Version 4 0\n(1 Model\n)\n")
    assert model.num_atoms == 0
    assert model.atoms.cartesian.shape == (0, 3)


def test_missing_model_scope() -> None:
    with pytest.raises(StructuralParseError):
        parse_msi("# MSI CERIUS2 DataModel File Version 4 0\n")


def test_unterminated_model_reports_remainder(cubic_msi_text: str) -> None:
    broken = cubic_msi_text.replace("    (A I Id 1)\n  )\n)\n", "    (A I Id 1)\n")
    with pytest.raises(StructuralParseError) as info:
        parse_msi(broken)
    assert "(2 Atom" in info.value.remainder


def test_trailing_garbage_is_structural_error(cubic_msi_text: str) -> None:
    with pytest.raises(StructuralParseError) as info:
        parse_msi(cubic_msi_text.replace("\n)\n", "\n  garbage\n)\n"))
    assert "garbage" in info.value.remainder


@pytest.mark.parametrize("missing", ["ACL", "XYZ", "Id"])
def test_atom_missing_required_field(cubic_msi_text: str, missing: str) -> None:
    lines = [line for line in cubic_msi_text.splitlines(keepends=True) if "(A " not in line or f" {missing} " not in line]
    with pytest.raises(SemanticExtractionError) as info:
        parse_msi("".join(lines))
    assert info.value.field == missing


def test_label_is_optional(cubic_msi_text: str) -> None:
    without_label = cubic_msi_text.replace('    (A C Label "C")\n', "")
    model = parse_msi(without_label)
    np.testing.assert_allclose(model.atoms.cartesian, [[5.0, 5.0, 5.0]])


def test_malformed_coordinates(cubic_msi_text: str) -> None:
    with pytest.raises(SemanticExtractionError):
        parse_msi(cubic_msi_text.replace("(A D XYZ (5 5 5))", "(A D XYZ (5 five 5))"))


def test_incomplete_lattice(cubic_msi_text: str) -> None:
    with pytest.raises(SemanticExtractionError) as info:
        parse_msi(cubic_msi_text.replace("  (A D C3 (0 0 10))\n", ""))
    assert info.value.field == "C3"


def test_malformed_settings(cubic_msi_text: str) -> None:
    with pytest.raises(SemanticExtractionError):
        parse_msi(cubic_msi_text.replace('"1 1"', '"P1"'))
    with pytest.raises(SemanticExtractionError):
        parse_msi(cubic_msi_text.replace("CRY/TOLERANCE 0.05", "CRY/TOLERANCE high"))


def test_attribute_table_last_wins() -> None:
    table = build_attribute_table(["D CRY/TOLERANCE 0.05", "I PeriodicType 100", "D CRY/TOLERANCE 0.1"])
    assert table["CRY/TOLERANCE"].value == "0.1"
    assert extract_settings(table).cry_tolerance == 0.1


def test_no_attributes_gives_default_settings() -> None:
    settings = extract_settings({})
    assert settings.periodic_type == 100
    assert settings.space_group == "1 1"
