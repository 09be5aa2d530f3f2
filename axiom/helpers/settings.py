"""
Settings file loading.

Settings are YAML mappings read from, in order, ``~/.axiom.yml``,
``<project_root>/.axiom.yml``, ``./.axiom.yml`` and an explicitly named
file. Later files override top-level keys of earlier ones.

Recognised keys::

    model: gpt-4o                       # active model id
    model-settings-files: [models.yml]  # extra model lists
    plugin-paths: [~/.axiom/plugins]    # extension plugin files/directories
    soft-failures:
      jira:
        not-configured: "# Jira is not set up ..."
        auth-required: "# Jira needs a token ..."
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from axiom.helpers import nested

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = ".axiom.yml"


def generate_search_path_list(
    default_file: str, project_root: Optional[str], explicit_file: Optional[str]
) -> List[Path]:
    """
    List candidate settings files from lowest to highest precedence.

    Duplicates (the same resolved file reached twice) are dropped.
    """
    files = [Path.home() / default_file]
    if project_root:
        files.append(Path(project_root) / default_file)
    files.append(Path(default_file))
    if explicit_file:
        files.append(Path(explicit_file).expanduser())

    resolved = []
    for fn in files:
        fn = fn.resolve()
        if fn not in resolved:
            resolved.append(fn)
    return resolved


def read_settings_file(path: Path) -> Dict[str, Any]:
    """Read one YAML settings file; an empty file is an empty mapping."""
    with open(path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return content


class Settings:
    """Merged settings plus the file that writes go back to."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, path: Optional[Path] = None):
        self.data = data or {}
        self.path = path

    @classmethod
    def load(cls, project_root=None, settings_fname=None) -> "Settings":
        data = {}
        last_loaded = None
        for fname in generate_search_path_list(
            DEFAULT_SETTINGS_FILE, project_root, settings_fname
        ):
            if not fname.exists():
                continue
            try:
                data.update(read_settings_file(fname))
                last_loaded = fname
                logger.debug(f"Loaded settings from {fname}")
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"Error loading settings from {fname}: {e}")

        if settings_fname and last_loaded != Path(settings_fname).expanduser().resolve():
            logger.warning(f"Settings file not found: {settings_fname}")

        path = Path(settings_fname).expanduser().resolve() if settings_fname else last_loaded
        return cls(data, path)

    def get(self, path, default=None):
        return nested.getter(self.data, path, default)

    def set(self, path: str, value) -> None:
        nested.setter(self.data, path, value)

    def save(self) -> bool:
        """Write the settings back to their file; no-op without one."""
        if not self.path:
            return False
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.data, f, default_flow_style=False, sort_keys=False)
        return True
