import numpy as np
import pytest

from conftest import make_model

from castep_model_core import cell_to_msi, export_msi, merge, msi_to_cell, parse_msi
from castep_model_core.converter import batch_convert, convert_msi_file, detect_input_format
from castep_model_core.errors import DialectError, GeometryError
from castep_model_core.models import Dialect


def test_cubic_msi_to_cell(cubic_msi_text) -> None:
    cell = msi_to_cell(parse_msi(cubic_msi_text))

    assert cell.dialect is Dialect.CELL
    np.testing.assert_allclose(cell.lattice.vectors, np.eye(3) * 10.0, atol=1e-12)
    np.testing.assert_allclose(cell.atoms.cartesian[0], [5.0, 5.0, 5.0], atol=1e-12)
    np.testing.assert_allclose(cell.atoms.fractional_array()[0], [0.5, 0.5, 0.5], atol=1e-12)


def test_msi_to_cell_orders_by_atomic_number(mixed_msi_text) -> None:
    msi = parse_msi(mixed_msi_text)
    assert msi.atoms.element_symbols == ["O", "C"]

    cell = msi_to_cell(msi)
    assert cell.atoms.element_symbols == ["C", "O"]
    assert cell.atoms.atom_ids.tolist() == [1, 2]
    np.testing.assert_allclose(cell.atoms.fractional_array()[1], [1.2 / 6.5, 0.0, 0.0], atol=1e-12)


def test_msi_to_cell_leaves_input_unchanged(triclinic_model) -> None:
    vectors = triclinic_model.lattice.vectors.copy()
    cartesian = triclinic_model.atoms.cartesian.copy()
    symbols = triclinic_model.atoms.element_symbols

    msi_to_cell(triclinic_model)

    np.testing.assert_array_equal(triclinic_model.lattice.vectors, vectors)
    np.testing.assert_array_equal(triclinic_model.atoms.cartesian, cartesian)
    assert triclinic_model.atoms.element_symbols == symbols
    assert triclinic_model.dialect is Dialect.MSI


def test_msi_to_cell_canonical_orientation(triclinic_model) -> None:
    cell = msi_to_cell(triclinic_model)
    a, b = cell.lattice.a, cell.lattice.b
    np.testing.assert_allclose(a[1:], [0.0, 0.0], atol=1e-12)
    assert b[2] == pytest.approx(0.0, abs=1e-12)
    np.testing.assert_allclose(cell.lattice.lengths(), triclinic_model.lattice.lengths())
    np.testing.assert_allclose(cell.lattice.angles(), triclinic_model.lattice.angles())

    assert cell.atoms.element_symbols == ["O", "O", "Al", "Ti"]
    fractional = cell.atoms.fractional_array()
    np.testing.assert_allclose(fractional @ cell.lattice.vectors.T, cell.atoms.cartesian, atol=1e-10)


def test_fractional_coordinates_survive_conversion(triclinic_model) -> None:
    original = triclinic_model.atoms.cartesian @ np.linalg.inv(triclinic_model.lattice.vectors).T
    cell = msi_to_cell(triclinic_model)
    by_id = dict(zip(cell.atoms.atom_ids.tolist(), cell.atoms.fractional_array()))
    for row, atom_id in enumerate(triclinic_model.atoms.atom_ids.tolist()):
        np.testing.assert_allclose(by_id[atom_id], original[row], atol=1e-10)


def test_msi_to_cell_requires_msi(triclinic_model) -> None:
    cell = msi_to_cell(triclinic_model)
    with pytest.raises(DialectError):
        msi_to_cell(cell)
    with pytest.raises(DialectError):
        cell_to_msi(triclinic_model)


def test_msi_to_cell_requires_lattice(molecule_msi_text) -> None:
    with pytest.raises(GeometryError):
        msi_to_cell(parse_msi(molecule_msi_text))


def test_cell_to_msi(triclinic_model) -> None:
    msi = cell_to_msi(msi_to_cell(triclinic_model))

    assert msi.dialect is Dialect.MSI
    assert msi.atoms.atom_ids.tolist() == [1, 2, 3, 4]
    assert msi.atoms.element_symbols == ["Ti", "O", "O", "Al"]
    b = msi.lattice.b
    np.testing.assert_allclose([b[0], b[2]], [0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(
        msi.atoms.fractional_array() @ msi.lattice.vectors.T, msi.atoms.cartesian, atol=1e-10
    )


def test_settings_follow_conversion(cubic_msi_text) -> None:
    text = cubic_msi_text.replace("CRY/TOLERANCE 0.05", "CRY/TOLERANCE 0.1")
    cell = msi_to_cell(parse_msi(text))
    assert cell.settings.cry_tolerance == pytest.approx(0.1)
    assert cell.settings.kpoints_grid == (1, 1, 1)
    assert cell_to_msi(cell).settings.cry_tolerance == pytest.approx(0.1)


def test_export_then_parse(mixed_msi_text) -> None:
    model = parse_msi(mixed_msi_text)
    text = export_msi(model)

    assert text.startswith("# MSI CERIUS2 DataModel File Version 4 0\n(1 Model\n")
    assert '  (2 Atom\n    (A C ACL "6 C")' in text
    assert "  (A D A3 (6.500000000000 0.000000000000 0.000000000000))" in text

    reparsed = parse_msi(text)
    assert reparsed.atoms.atom_ids.tolist() == [1, 2]
    assert reparsed.atoms.element_symbols == ["C", "O"]
    np.testing.assert_allclose(reparsed.lattice.vectors, model.lattice.vectors)
    np.testing.assert_allclose(reparsed.atoms.xyz_by_id(2), [1.2, 0.0, 0.0])


def test_export_without_lattice(molecule_msi_text) -> None:
    text = export_msi(parse_msi(molecule_msi_text))
    assert "CRY/DISPLAY" not in text
    assert "A3" not in text
    assert "(3 Atom" in text
    assert text.endswith(")\n")


def test_export_msi_rejects_cell(triclinic_model) -> None:
    with pytest.raises(DialectError):
        export_msi(msi_to_cell(triclinic_model))


def test_merge_shifts_ids(cubic_msi_text) -> None:
    first = parse_msi(cubic_msi_text)
    second = parse_msi(cubic_msi_text)
    merged = merge(first, second)

    assert merged.num_atoms == 2
    assert merged.atoms.atom_ids.tolist() == [1, 2]
    np.testing.assert_allclose(merged.lattice.vectors, first.lattice.vectors)
    assert first.num_atoms == 1


def test_merge_cell_models_recomputes_fractional(triclinic_model) -> None:
    first = msi_to_cell(triclinic_model)
    other = make_model(["H"], [1], [[1.0, 1.0, 1.0]], [1], lattice=np.eye(3) * 2.0)
    second = msi_to_cell(other)

    merged = merge(first, second)
    assert merged.atoms.atom_ids.tolist()[-1] == 5
    np.testing.assert_allclose(
        merged.atoms.fractional_array() @ merged.lattice.vectors.T, merged.atoms.cartesian, atol=1e-10
    )


def test_merge_rejects_mixed_dialects(triclinic_model) -> None:
    with pytest.raises(DialectError):
        merge(triclinic_model, msi_to_cell(triclinic_model))


def test_detect_input_format(tmp_path, cubic_msi_text) -> None:
    assert detect_input_format(tmp_path / "a.msi") == "msi"
    assert detect_input_format(tmp_path / "a.CELL") == "cell"

    unknown = tmp_path / "structure.txt"
    unknown.write_text(cubic_msi_text)
    assert detect_input_format(unknown) == "msi"

    cell_like = tmp_path / "structure.in"
    cell_like.write_text("%block lattice_cart\n%endblock lattice_cart\n")
    assert detect_input_format(cell_like) == "cell"

    assert detect_input_format(tmp_path / "missing.dat") is None


def test_convert_msi_file(tmp_path, cubic_msi_text) -> None:
    msi_file = tmp_path / "cubic.msi"
    msi_file.write_text(cubic_msi_text)

    output = convert_msi_file(msi_file)
    assert output == tmp_path / "cubic.cell"
    content = output.read_text()
    assert content.startswith("%BLOCK LATTICE_CART\n")
    assert "  C  0.5000000000000000  0.5000000000000000  0.5000000000000000" in content

    dos = convert_msi_file(msi_file, band_structure=True)
    assert dos == tmp_path / "cubic_DOS.cell"
    assert "%BLOCK BS_KPOINTS_LIST" in dos.read_text()


def test_convert_msi_file_failures(tmp_path, molecule_msi_text) -> None:
    molecule = tmp_path / "molecule.msi"
    molecule.write_text(molecule_msi_text)
    assert convert_msi_file(molecule) is None

    broken = tmp_path / "broken.msi"
    broken.write_text("# MSI CERIUS2 DataModel File Version 4 0\n(1 Model\n  (2 Atom\n")
    assert convert_msi_file(broken) is None


def test_batch_convert(tmp_path, cubic_msi_text, molecule_msi_text) -> None:
    input_dir = tmp_path / "msi"
    input_dir.mkdir()
    (input_dir / "b.msi").write_text(cubic_msi_text)
    (input_dir / "a.msi").write_text(cubic_msi_text)
    (input_dir / "molecule.msi").write_text(molecule_msi_text)

    output_dir = tmp_path / "cell"
    converted = batch_convert(input_dir, output_dir)

    assert converted == [output_dir / "a.cell", output_dir / "b.cell"]
    assert all(path.is_file() for path in converted)
    assert batch_convert(tmp_path / "missing") == []


def test_merge_into_molecule_clears_foreign_fractional(molecule_msi_text, triclinic_model) -> None:
    first = parse_msi(molecule_msi_text)
    second = triclinic_model.copy()
    second.atoms.set_fractional(np.full((second.num_atoms, 3), 0.25))

    merged = merge(first, second)

    assert merged.lattice is None
    assert merged.atoms.fractional == [None] * merged.num_atoms
    assert merged.atoms.atom_ids.tolist() == [1, 2, 3, 4, 5, 6]


def test_cubic_cell_positions_are_exact(cubic_msi_text) -> None:
    cell = msi_to_cell(parse_msi(cubic_msi_text))
    assert cell.atoms.fractional_array()[0].tolist() == [0.5, 0.5, 0.5]
