"""Configuration loading for Obreon Chronicle.

Two tiers:
1. Plain settings in .toml or .json, enough for most campaigns
2. A .py file for GMs who want hooks or extra MCP tools
"""

from __future__ import annotations

import importlib.util
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

# Python 3.11+ has tomllib in stdlib; fall back to tomli for older versions
try:
    import tomllib  # Python 3.11+
except ImportError:
    try:
        import tomli as tomllib  # Python <3.11
    except ImportError:  # pragma: no cover
        tomllib = None

from .climate import ClimateDefinition
from .errors import ClimateConfigError


# Applied to dates typed by players, e.g. '2863/05/01' means 8:00 that day
DEFAULT_DATE_DEFAULTS = {"month": 1, "day": 1, "hour": 8, "minute": 0}


@dataclass
class CampaignConfig:
    """Configuration for a campaign's chronicle."""

    # Campaign identification
    campaign_name: str = "unnamed"
    project_root: Path = field(default_factory=Path.cwd)

    # Where handout records are kept (relative to project_root)
    handouts_dir: str = "chronicle/handouts"

    # Climate: either a file (relative to project_root) or an inline table
    climate_file: Optional[str] = None
    climate: Optional[dict[str, Any]] = None

    # Dice seed for the built-in roller (None = unseeded)
    dice_seed: Optional[int] = None

    date_defaults: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_DATE_DEFAULTS))
    lock_timeout: float = 10.0

    # Hooks (populated from Python config)
    hooks: dict[str, Callable] = field(default_factory=dict)

    # Custom tools (populated from Python config)
    custom_tools: dict[str, Callable] = field(default_factory=dict)

    def get_handouts_path(self) -> Path:
        return self.project_root / self.handouts_dir

    def get_climate_path(self) -> Optional[Path]:
        if self.climate_file is None:
            return None
        path = Path(self.climate_file)
        return path if path.is_absolute() else self.project_root / path


def load_toml_config(path: Path) -> dict[str, Any]:
    """Read a TOML settings file."""
    if tomllib is None:
        raise ImportError("tomli required for TOML config: pip install tomli")
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Read a JSON settings file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_data_file(path: Path) -> dict[str, Any]:
    """Load a .toml or .json file by suffix."""
    suffix = path.suffix.lower()
    if suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    raise ValueError(f"Unsupported data file type: {suffix}")


def load_python_config(path: Path) -> tuple[dict[str, Any], dict[str, Callable], dict[str, Callable]]:
    """Load configuration from Python file.

    Returns:
        Tuple of (config_dict, hooks_dict, custom_tools_dict)

    Convention:
        - CONFIG dict or config dict for static configuration
        - Functions named hook_* become hooks (pre_save, post_save)
        - Functions named custom_tool_* become MCP tools
    """
    spec = importlib.util.spec_from_file_location("chronicle_config", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load Python config from {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["chronicle_config"] = module
    spec.loader.exec_module(module)

    config_dict = {}
    if hasattr(module, "CONFIG"):
        config_dict = module.CONFIG
    elif hasattr(module, "config"):
        config_dict = module.config

    hooks = {}
    custom_tools = {}
    for name in dir(module):
        if name.startswith("hook_"):
            hooks[name[len("hook_"):]] = getattr(module, name)
        elif name.startswith("custom_tool_"):
            custom_tools[name[len("custom_tool_"):]] = getattr(module, name)

    return config_dict, hooks, custom_tools


def dict_to_config(data: dict[str, Any], project_root: Path) -> CampaignConfig:
    """Convert dictionary to CampaignConfig."""
    config = CampaignConfig(project_root=project_root)

    if "campaign" in data:
        campaign = data["campaign"]
        if "name" in campaign:
            config.campaign_name = campaign["name"]
        if "dice_seed" in campaign:
            config.dice_seed = campaign["dice_seed"]

    if "directories" in data:
        dirs = data["directories"]
        if "handouts" in dirs:
            config.handouts_dir = dirs["handouts"]

    if "climate_file" in data:
        config.climate_file = data["climate_file"]
    if "climate" in data:
        config.climate = data["climate"]

    if "dates" in data:
        dates = data["dates"]
        if "defaults" in dates:
            config.date_defaults = {**DEFAULT_DATE_DEFAULTS, **dates["defaults"]}

    if "storage" in data:
        storage = data["storage"]
        if "lock_timeout" in storage:
            config.lock_timeout = float(storage["lock_timeout"])

    return config


def find_config_file(project_root: Path) -> Optional[Path]:
    """First config file present in the campaign root.

    Search order:
    1. chronicle_config.py (most flexible)
    2. chronicle_config.toml
    3. chronicle_config.json
    4. .chronicle.toml
    5. .chronicle.json
    """
    candidates = [
        "chronicle_config.py",
        "chronicle_config.toml",
        "chronicle_config.json",
        ".chronicle.toml",
        ".chronicle.json",
    ]

    for name in candidates:
        path = project_root / name
        if path.exists():
            return path

    return None


def load_config(project_root: Path, config_path: Optional[Path] = None) -> CampaignConfig:
    """Load campaign configuration.

    Args:
        project_root: Root directory of the campaign
        config_path: Optional explicit path to config file

    Returns:
        CampaignConfig instance
    """
    if config_path is None:
        config_path = find_config_file(project_root)

    if config_path is None:
        # Nothing to load; every setting keeps its default
        return CampaignConfig(project_root=project_root)

    suffix = config_path.suffix.lower()

    if suffix == ".py":
        config_dict, hooks, custom_tools = load_python_config(config_path)
        config = dict_to_config(config_dict, project_root)
        config.hooks = hooks
        config.custom_tools = custom_tools
        return config

    elif suffix in (".toml", ".json"):
        return dict_to_config(load_data_file(config_path), project_root)

    else:
        raise ValueError(f"Unsupported config file type: {suffix}")


def load_climate_definition(config: CampaignConfig) -> ClimateDefinition:
    """Build the campaign's climate from the inline table or climate file.

    Raises:
        ClimateConfigError: If neither is configured or the definition is invalid
    """
    if config.climate is not None:
        return ClimateDefinition.from_dict(config.climate)

    path = config.get_climate_path()
    if path is None:
        raise ClimateConfigError("No climate configured: set climate_file or a [climate] table")
    if not path.exists():
        raise ClimateConfigError(f"Climate file not found: {path}")
    return ClimateDefinition.from_dict(load_data_file(path))
