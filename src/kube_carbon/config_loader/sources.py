"""Configuration file discovery and decoding.

A config file is located (explicit path, then ``KUBE_CARBON_CONFIG_PATH``,
then the first of the default candidates that exists), read once and decoded
by suffix. Files that are missing, unreadable, malformed or not a mapping are
skipped with a warning; the loader then falls back to environment values.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

from kube_carbon.settings import KubeCarbonSettings

LOGGER = logging.getLogger(__name__)

_DEFAULT_CANDIDATES: tuple[Path, ...] = (
    Path("config/kube-carbon.yml"),
    Path("config/kube-carbon.yaml"),
    Path("config/kube-carbon.json"),
)


def load_structured_config(
    path: str | None, settings: KubeCarbonSettings
) -> dict[str, object] | None:
    """Load configuration data from disk.

    Args:
        path: Explicit configuration path provided by the caller.
        settings: Environment-derived settings used for fallback discovery.

    Returns:
        The decoded configuration mapping when a usable file is found,
        otherwise ``None``.
    """

    explicit = path or settings.config_path
    candidates = (Path(explicit),) if explicit else _DEFAULT_CANDIDATES

    for candidate in candidates:
        if not candidate.exists():
            continue
        data = _read_config_file(candidate)
        if data is not None:
            LOGGER.debug("Configuration file loaded", extra={"path": str(candidate)})
            return data
    return None


def _read_config_file(path: Path) -> dict[str, object] | None:
    decoder = _DECODERS.get(path.suffix.lower())
    if decoder is None:
        LOGGER.warning(
            "Unsupported configuration file suffix", extra={"path": str(path)}
        )
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning(
            "Configuration file unreadable",
            extra={"path": str(path), "error_type": type(exc).__name__},
        )
        return None

    data = decoder(text, path)
    if data is None:
        return None
    if not isinstance(data, dict):
        LOGGER.warning(
            "Configuration file is not a mapping", extra={"path": str(path)}
        )
        return None
    return {key: item for key, item in data.items() if isinstance(key, str)}


def _decode_json(text: str, path: Path) -> object | None:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        LOGGER.warning(
            "Invalid JSON configuration",
            extra={"path": str(path), "line": exc.lineno},
        )
        return None


def _decode_yaml(text: str, path: Path) -> object | None:
    # PyYAML ships in the optional ``yaml`` extra
    try:
        import yaml
    except ModuleNotFoundError:
        LOGGER.warning(
            "PyYAML not installed; YAML configuration ignored",
            extra={"path": str(path)},
        )
        return None
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        LOGGER.warning(
            "Invalid YAML configuration",
            extra={"path": str(path), "error": str(exc)},
        )
        return None


_DECODERS: dict[str, Callable[[str, Path], object | None]] = {
    ".json": _decode_json,
    ".yml": _decode_yaml,
    ".yaml": _decode_yaml,
}
