"""User configuration for the ottl command line tool."""

import configparser
import os
import platform
from pathlib import Path
from typing import Any, Optional

APP_NAME = "ottlcli"

_home = os.path.expanduser("~")

xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(_home, ".config")

default_cfg = {
    "transform": {"context": ""},
    "output": {"indent": ""},
}

if platform.system() == "Darwin":
    # macOS
    config_dir = Path("~/Library/Application Support/ottlcli").expanduser()
else:
    # Linux or others
    config_dir = Path(os.path.join(xdg_config_home, APP_NAME))


def get_config_file() -> Path:
    return config_dir / f"{APP_NAME}.cfg"


class ConfigAccessor:
    """
    A read-only, dict-like accessor for configuration files.

    A missing file, section or key is handled gracefully.

    Usage:
        config = ConfigAccessor()
        indent = config.get("output", "indent", default="")
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: Path to the configuration file. If None, uses the default path.
        """
        self.config_path = get_config_file() if config_path is None else Path(config_path)

        self.config = configparser.ConfigParser()
        if self.config_path.exists():
            self.config.read(self.config_path)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get a configuration value from the specified section and key.

        Returns:
            The configuration value if it exists, otherwise the default value
        """
        try:
            return self.config[section][key]
        except (KeyError, configparser.NoSectionError, configparser.NoOptionError):
            return default


def get_default_context(config: ConfigAccessor) -> str:
    """The context override configured under ``[transform] context``, if any."""
    return config.get(
        "transform", "context", default_cfg["transform"]["context"]
    ).strip()


def get_output_indent(config: ConfigAccessor) -> Optional[int]:
    """
    The indent configured under ``[output] indent``.

    Returns:
        None for compact output (the default), otherwise a non-negative int.

    Raises:
        ValueError: if the configured value is not a non-negative integer.
    """
    raw = config.get("output", "indent", default_cfg["output"]["indent"]).strip()
    if not raw:
        return None
    try:
        indent = int(raw)
    except ValueError:
        raise ValueError(
            f"invalid [output] indent in {config.config_path}: {raw!r} "
            "is not an integer"
        )
    if indent < 0:
        raise ValueError(
            f"invalid [output] indent in {config.config_path}: must not be negative"
        )
    return indent
