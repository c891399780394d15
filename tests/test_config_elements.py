import pytest
import yaml

from castep_model_core.config import ConfigManager
from castep_model_core.errors import UnknownElementError
from castep_model_core.models import Dialect, ElementTable, ModelSettings
from castep_model_core.models.elements import standardize_symbol, valence_lcao_states
from castep_model_core.utils.validation import validate_structure


def test_default_config_values() -> None:
    config = ConfigManager()
    assert config.get("msi.cry_tolerance") == pytest.approx(0.05)
    assert config.get("cell.kpoints_grid") == [1, 1, 1]
    assert config.get("elements.potentials.Ti") == "Ti_00.uspcc"
    assert config.get("msi.missing.key", "fallback") == "fallback"
    assert "cut_off_energy" in config.get_section("castep")


def test_user_config_and_env_override(tmp_path, monkeypatch) -> None:
    user_config = tmp_path / "config.yaml"
    user_config.write_text(yaml.dump({"castep": {"cut_off_energy": 500.0}, "msi": {"periodic_type": 50}}))
    monkeypatch.setenv("CASTEP_POTENTIALS_DIR", str(tmp_path))

    config = ConfigManager(str(user_config))

    assert config.get("castep.cut_off_energy") == pytest.approx(500.0)
    assert config.get("castep.metals_method") == "dm"
    assert config.get("msi.periodic_type") == 50
    assert config.get("msi.space_group") == "1 1"
    assert config.get("castep.potentials_dir") == str(tmp_path)


def test_settings_defaults_per_dialect() -> None:
    msi = ModelSettings.default_for(Dialect.MSI)
    cell = ModelSettings.default_for(Dialect.CELL)
    assert msi.cry_display == (192, 256)
    assert cell.kpoints_list == ((0.0, 0.0, 0.0, 1.0),)
    assert cell.external_pressure == (0.0,) * 6
    assert msi.with_updates(space_group="3 1").space_group == "3 1"
    assert msi.space_group == "1 1"


def test_element_table_lookup() -> None:
    table = ElementTable(potential_suffix="_00.usp", potentials={"ti": "Ti_00.uspcc"}, spins={"Ni": 2},
                         lcao_states={"Cs": 4})

    assert table.atomic_number("fe") == 26
    assert table.mass("Fe") == pytest.approx(55.845, abs=1e-2)
    assert table.potential("O") == "O_00.usp"
    assert table.potential("Ti") == "Ti_00.uspcc"
    assert table.spin("NI") == 2
    assert table.spin("O") == 0
    assert table.lcao("Cs") == 4
    assert table.lookup("Ce").lcao == 4


def test_unknown_element() -> None:
    table = ElementTable(potential_suffix="_00.usp", potentials={}, spins={}, lcao_states={})
    with pytest.raises(UnknownElementError) as info:
        table.mass("Xx")
    assert "Xx" in str(info.value)


@pytest.mark.parametrize(
    "number, expected",
    [(1, 1), (11, 1), (6, 2), (17, 2), (26, 3), (78, 3), (64, 4), (92, 4)],
)
def test_valence_lcao_states(number: int, expected: int) -> None:
    assert valence_lcao_states(number) == expected


def test_standardize_symbol() -> None:
    assert standardize_symbol(" tI ") == "Ti"
    assert standardize_symbol("o") == "O"


def test_validate_structure(tmp_path, cubic_msi_text) -> None:
    msi_file = tmp_path / "cubic.msi"
    msi_file.write_bytes(cubic_msi_text.replace("\n", "\r\n").encode())

    is_valid, content = validate_structure(msi_file)
    assert is_valid
    assert "\r\n" in content

    assert validate_structure(tmp_path / "missing.msi")[0] is False

    wrong_suffix = tmp_path / "cubic.txt"
    wrong_suffix.write_text(cubic_msi_text)
    assert validate_structure(wrong_suffix)[0] is False

    no_model = tmp_path / "empty_model.msi"
    no_model.write_text("# MSI CERIUS2 DataModel File Version 4 0\n")
    assert validate_structure(no_model)[0] is False
