"""
Dynamic loading of extension plugins from Python files.

An extension plugin is a ``.py`` file exposing a ``create_plugin()`` factory.
Files are imported under a generated module name so that two plugins with the
same file name in different directories do not collide.
"""

import importlib.util
import logging
import re
import secrets
import string
import sys
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

logger = logging.getLogger(__name__)

PLUGIN_FACTORY = "create_plugin"

# absolute file path -> loaded module
module_cache: Dict[str, object] = {}


def gensym(length=32, prefix="gensym_"):
    """
    Generate a random identifier, used to make loaded module names unique.
    """
    alphabet = string.ascii_letters + string.digits
    return prefix + "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_filename(filename: str) -> str:
    """
    Turn a file name into a valid, lower-case module name.

    ``git-tools.v2.py`` becomes ``git_tools_v2``; a leading digit gets an
    underscore in front.
    """
    name = re.sub(r"[^a-zA-Z0-9_]", "_", Path(filename).stem)
    if not name or name[0].isdigit():
        name = "_" + name
    return name.lower()


def load_module(source, module_name=None, reload=False):
    """
    Import a Python file as a module.

    :param source: path of the file to load
    :param module_name: name to register in sys.modules (generated if omitted)
    :param reload: bypass the cache and execute the file again
    :return: the loaded module
    """
    key = str(Path(source).resolve())

    if key in module_cache and not reload:
        return module_cache[key]

    if module_name is None:
        module_name = f"{normalize_filename(source)}_{gensym(8, '')}"

    spec = importlib.util.spec_from_file_location(module_name, source)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load plugin module from {source}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)

    module_cache[key] = module
    return module


def iter_plugin_files(paths: Iterable[str]) -> Iterator[Path]:
    """Yield the ``.py`` files named directly or contained in the given directories."""
    for path_str in paths:
        path = Path(path_str).expanduser()
        if path.is_dir():
            yield from sorted(p for p in path.glob("*.py") if not p.name.startswith("_"))
        elif path.suffix == ".py" and path.exists():
            yield path
        else:
            logger.warning(f"Plugin path is not a Python file or directory: {path}")


def load_plugins(paths: Iterable[str], reload=False) -> List[object]:
    """
    Load every plugin found under ``paths``.

    Files that fail to import, or that have no ``create_plugin`` factory, are
    logged and skipped.
    """
    plugins = []
    for py_file in iter_plugin_files(paths):
        try:
            module = load_module(str(py_file), reload=reload)
        except Exception as e:
            logger.error(f"Error loading plugin from {py_file}: {e}")
            continue

        factory = getattr(module, PLUGIN_FACTORY, None)
        if not callable(factory):
            logger.warning(f"{py_file} has no {PLUGIN_FACTORY}() factory, skipping")
            continue

        try:
            plugins.append(factory())
        except Exception as e:
            logger.error(f"Error creating plugin from {py_file}: {e}")

    return plugins
