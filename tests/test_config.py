"""Tests for configuration loading."""

import json
import shutil
from pathlib import Path

import pytest

from obreon_chronicle.config import (
    CampaignConfig,
    dict_to_config,
    find_config_file,
    load_climate_definition,
    load_config,
    load_json_config,
    load_python_config,
    load_toml_config,
)
from obreon_chronicle.errors import ClimateConfigError

from conftest import TEST_CLIMATE

PROJECT_DIR = Path(__file__).resolve().parent.parent
EXAMPLES_DIR = PROJECT_DIR / "examples"


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_finds_python_config(self, temp_project):
        """Python config is found first."""
        (temp_project / "chronicle_config.py").write_text("CONFIG = {}")
        (temp_project / "chronicle_config.toml").write_text("")

        found = find_config_file(temp_project)
        assert found.name == "chronicle_config.py"

    def test_finds_toml_config(self, temp_project):
        (temp_project / "chronicle_config.toml").write_text("")
        (temp_project / "chronicle_config.json").write_text("{}")

        found = find_config_file(temp_project)
        assert found.name == "chronicle_config.toml"

    def test_finds_json_config(self, temp_project):
        (temp_project / "chronicle_config.json").write_text("{}")

        found = find_config_file(temp_project)
        assert found.name == "chronicle_config.json"

    def test_finds_dotfile_config(self, temp_project):
        (temp_project / ".chronicle.json").write_text("{}")

        found = find_config_file(temp_project)
        assert found.name == ".chronicle.json"

    def test_returns_none_if_no_config(self, temp_project):
        assert find_config_file(temp_project) is None


class TestDictToConfig:
    """Tests for dict_to_config."""

    def test_defaults(self, temp_project):
        config = dict_to_config({}, temp_project)
        assert config.campaign_name == "unnamed"
        assert config.handouts_dir == "chronicle/handouts"
        assert config.date_defaults == {"month": 1, "day": 1, "hour": 8, "minute": 0}
        assert config.get_handouts_path() == temp_project / "chronicle" / "handouts"

    def test_all_sections(self, temp_project):
        config = dict_to_config(
            {
                "campaign": {"name": "Osherion", "dice_seed": 99},
                "directories": {"handouts": "handouts"},
                "climate_file": "climate.toml",
                "dates": {"defaults": {"hour": 6}},
                "storage": {"lock_timeout": 3},
            },
            temp_project,
        )
        assert config.campaign_name == "Osherion"
        assert config.dice_seed == 99
        assert config.handouts_dir == "handouts"
        assert config.get_climate_path() == temp_project / "climate.toml"
        assert config.date_defaults == {"month": 1, "day": 1, "hour": 6, "minute": 0}
        assert config.lock_timeout == 3.0

    def test_absolute_climate_path(self, temp_project):
        config = CampaignConfig(project_root=temp_project, climate_file=str(temp_project / "x.toml"))
        assert config.get_climate_path() == temp_project / "x.toml"


class TestLoadConfig:
    """Tests for load_config."""

    def test_no_config_uses_defaults(self, temp_project):
        config = load_config(temp_project)
        assert config.project_root == temp_project
        assert config.hooks == {}

    def test_toml(self, temp_project):
        (temp_project / "chronicle_config.toml").write_text(
            '[campaign]\nname = "Osherion"\n\n[directories]\nhandouts = "handouts"\n'
        )
        config = load_config(temp_project)
        assert config.campaign_name == "Osherion"
        assert config.handouts_dir == "handouts"

    def test_json(self, temp_project):
        (temp_project / ".chronicle.json").write_text(json.dumps({"campaign": {"name": "Osherion"}}))
        assert load_config(temp_project).campaign_name == "Osherion"

    def test_explicit_path(self, temp_project):
        path = temp_project / "elsewhere.json"
        path.write_text(json.dumps({"campaign": {"name": "Elsewhere"}}))
        assert load_config(temp_project, path).campaign_name == "Elsewhere"

    def test_unsupported_suffix(self, temp_project):
        path = temp_project / "config.yaml"
        path.write_text("campaign: {}")
        with pytest.raises(ValueError):
            load_config(temp_project, path)

    def test_load_json_config(self, temp_project):
        path = temp_project / "config.json"
        path.write_text('{"campaign": {"name": "test"}}')
        assert load_json_config(path)["campaign"]["name"] == "test"


class TestLoadPythonConfig:
    """Tests for load_python_config."""

    def test_hooks_and_custom_tools(self, temp_project):
        path = temp_project / "chronicle_config.py"
        path.write_text(
            "CONFIG = {'campaign': {'name': 'Scripted'}}\n"
            "\n"
            "def hook_pre_save(journal):\n"
            "    return journal\n"
            "\n"
            "def custom_tool_ping(engine, params):\n"
            "    '''Answer a ping.'''\n"
            "    return {'success': True}\n"
        )

        config_dict, hooks, custom_tools = load_python_config(path)
        assert config_dict["campaign"]["name"] == "Scripted"
        assert list(hooks) == ["pre_save"]
        assert list(custom_tools) == ["ping"]

    def test_load_config_attaches_hooks(self, temp_project):
        (temp_project / "chronicle_config.py").write_text(
            "config = {'campaign': {'name': 'Lower'}}\n"
            "def hook_post_save(handout):\n"
            "    pass\n"
        )
        config = load_config(temp_project)
        assert config.campaign_name == "Lower"
        assert "post_save" in config.hooks

    def test_example_config_loads(self, temp_project):
        shutil.copy(EXAMPLES_DIR / "chronicle_config.py", temp_project / "chronicle_config.py")
        shutil.copy(EXAMPLES_DIR / "osherion_climate.toml", temp_project / "osherion_climate.toml")

        config = load_config(temp_project)

        assert config.campaign_name == "Osherion"
        assert set(config.hooks) == {"pre_save", "post_save"}
        assert set(config.custom_tools) == {"forecast"}
        assert load_climate_definition(config).name == "OsherionClimate"


class TestLoadClimateDefinition:
    """Tests for load_climate_definition."""

    def test_inline(self, temp_project):
        config = CampaignConfig(project_root=temp_project, climate=TEST_CLIMATE)
        assert load_climate_definition(config).name == "TestClimate"

    def test_json_file(self, temp_project):
        (temp_project / "climate.json").write_text(json.dumps(TEST_CLIMATE))
        config = CampaignConfig(project_root=temp_project, climate_file="climate.json")
        definition = load_climate_definition(config)
        assert [season.name for season in definition.seasons] == ["Hiems", "Aestas"]

    def test_example_toml(self, temp_project):
        config = CampaignConfig(project_root=EXAMPLES_DIR, climate_file="osherion_climate.toml")
        definition = load_climate_definition(config)
        assert [season.name for season in definition.seasons] == ["Hiems", "Ver", "Aestas", "Autumnus"]
        assert definition.sub_models["snowy"].next_specials[-1] == "blizzard"

    def test_nothing_configured(self, temp_project):
        with pytest.raises(ClimateConfigError):
            load_climate_definition(CampaignConfig(project_root=temp_project))

    def test_missing_file(self, temp_project):
        config = CampaignConfig(project_root=temp_project, climate_file="missing.toml")
        with pytest.raises(ClimateConfigError):
            load_climate_definition(config)


class TestProjectMetadata:
    """Packaging metadata points at files that ship with the project."""

    def test_readme_exists(self):
        project = load_toml_config(PROJECT_DIR / "pyproject.toml")["project"]
        assert project["readme"] == "README.md"
        assert (PROJECT_DIR / project["readme"]).is_file()
