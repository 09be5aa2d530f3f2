"""Dotted-path access into settings dicts and plugin/command declarations."""

from typing import Any, Dict, List, Union

_MISSING = object()


def _key_variants(key: str) -> List[str]:
    """``plugin-paths`` and ``plugin_paths`` name the same setting."""
    variants = [key]
    if "-" in key:
        variants.append(key.replace("-", "_"))
    if "_" in key:
        variants.append(key.replace("_", "-"))
    return variants


def arg_resolver(obj: Any, key: str, default: Any = None) -> Any:
    """
    Resolve one path segment against a list, dict or object.
    """
    if isinstance(obj, (list, tuple)):
        if str(key).isdigit() and int(key) < len(obj):
            return obj[int(key)]
        return default

    if isinstance(obj, dict):
        for variant in _key_variants(str(key)):
            if variant in obj:
                return obj[variant]
        return default

    if hasattr(obj, "__dict__") or hasattr(obj, "__slots__"):
        for variant in _key_variants(str(key)):
            value = getattr(obj, variant, _MISSING)
            if value is not _MISSING:
                return value
        return default

    return default


def getter(data: Any, path: Union[str, List[str]], default: Any = None) -> Any:
    """Safely read a nested value; the first path that resolves wins."""
    if data is None:
        return default

    paths = [path] if isinstance(path, str) else path

    for path_str in paths:
        current = data
        for part in path_str.split("."):
            current = arg_resolver(current, part, default=_MISSING)
            if current is _MISSING:
                break
        else:
            if current is not None:
                return current

    return default


def setter(data: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """Write ``value`` at a dotted path, creating intermediate dicts."""
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        existing = arg_resolver(current, part, default=None)
        if not isinstance(existing, dict):
            existing = {}
            current[part] = existing
        current = existing

    last = parts[-1]
    for variant in _key_variants(last):
        if variant in current:
            current[variant] = value
            return data
    current[last] = value
    return data
