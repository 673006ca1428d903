"""Configuration manager for codelayers using TOML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


def config_file() -> Path:
    """Location of the TOML file (follows ``CODELAYERS_HOME``)."""
    return config.BASE_DIR / "config.toml"


DEFAULT_ANALYSIS_CONFIG: Dict[str, Any] = {
    "risk_weights": dict(config.DEFAULT_RISK_WEIGHTS),
    "cluster_affinity": config.DEFAULT_CLUSTER_AFFINITY,
    "max_file_size": config.DEFAULT_MAX_FILE_SIZE,
    "top_n": config.DEFAULT_TOP_N,
    "max_cycles": config.DEFAULT_MAX_CYCLES,
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    path = config_file()
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}


def _save_full_config(payload: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    config.BASE_DIR.mkdir(parents=True, exist_ok=True)
    try:
        with open(config_file(), "w") as f:
            toml.dump(payload, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config file: %s", exc)
        return False


def load_analysis_config() -> Dict[str, Any]:
    """Load the ``[analysis]`` section merged over the defaults.

    Returns:
        Dict with ``risk_weights``, ``cluster_affinity``, ``max_file_size``,
        ``top_n`` and ``max_cycles``. Unknown keys are kept as-is.
    """
    section = load_full_config().get("analysis", {})
    merged = {**DEFAULT_ANALYSIS_CONFIG, **section}
    merged["risk_weights"] = {
        **DEFAULT_ANALYSIS_CONFIG["risk_weights"],
        **section.get("risk_weights", {}),
    }
    return merged


def save_analysis_config(
    risk_weights: Optional[Dict[str, float]] = None,
    cluster_affinity: Optional[float] = None,
    max_file_size: Optional[int] = None,
    top_n: Optional[int] = None,
    max_cycles: Optional[int] = None,
) -> bool:
    """Save analysis tunables to the ``[analysis]`` section.

    Only the given values are written; other sections are preserved.

    Returns:
        True if saved successfully, False otherwise
    """
    full = load_full_config()
    section = full.setdefault("analysis", {})
    if risk_weights is not None:
        section["risk_weights"] = dict(risk_weights)
    if cluster_affinity is not None:
        section["cluster_affinity"] = cluster_affinity
    if max_file_size is not None:
        section["max_file_size"] = max_file_size
    if top_n is not None:
        section["top_n"] = top_n
    if max_cycles is not None:
        section["max_cycles"] = max_cycles
    return _save_full_config(full)
