"""
Configuration loading and validation.

This module handles loading of YAML configuration files and
reports problems with the tunable engine constants.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List

import yaml

logger = logging.getLogger(__name__)


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    logger.info(f"Loading configuration from {filepath}")
    with open(filepath, "r") as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Configuration file is empty: {filepath}")

    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of warnings/errors.

    Args:
        config: Configuration dictionary

    Returns:
        List of warning/error messages (empty if valid)
    """
    issues = []

    known_sections = ["global", "embedding", "traits", "fusion", "store",
                      "retrieval", "explanation", "clustering", "projection", "graph"]
    for section in config:
        if section not in known_sections:
            issues.append(f"Unknown section: {section}")

    # Fusion weights: both sub-vectors must keep some influence
    if "fusion" in config:
        fusion = config["fusion"]
        w_trait = fusion.get("trait_weight", 0.7)
        w_semantic = fusion.get("semantic_weight", 0.3)
        if w_trait <= 0 or w_semantic <= 0:
            issues.append(f"Fusion weights must both be positive: {w_trait}, {w_semantic}")
        elif abs(w_trait + w_semantic - 1.0) > 0.01:
            issues.append(f"Fusion weights don't sum to 1: {w_trait} + {w_semantic}")

        for key in ["semantic_blend", "profile_blend_scale"]:
            value = fusion.get(key)
            if value is not None and not 0 <= value <= 1:
                issues.append(f"fusion.{key} must be in [0, 1], got {value}")

    if "traits" in config:
        step = config["traits"].get("step_scale", 0.2)
        if not 0 < step <= 1:
            issues.append(f"traits.step_scale must be in (0, 1], got {step}")

    if "clustering" in config:
        eps = config["clustering"].get("eps", 0.3)
        if eps <= 0:
            issues.append(f"clustering.eps must be positive, got {eps}")
        min_points = config["clustering"].get("min_points", 3)
        if min_points < 1:
            issues.append(f"clustering.min_points must be at least 1, got {min_points}")

    if "projection" in config:
        n_neighbors = config["projection"].get("n_neighbors", 15)
        if n_neighbors < 2:
            issues.append(f"projection.n_neighbors must be at least 2, got {n_neighbors}")
        n_components = config["projection"].get("n_components", 3)
        if n_components < 1:
            issues.append(f"projection.n_components must be positive, got {n_components}")

    if "embedding" in config:
        provider = config["embedding"].get("provider", "hash")
        if provider not in ["hash", "openai"]:
            issues.append(f"Unknown embedding provider: {provider}")

    # Check random seed is set
    if "global" in config:
        if "random_seed" not in config["global"]:
            issues.append("Missing global.random_seed (required for reproducible projections)")

    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "fusion.trait_weight")
        default: Default value if path doesn't exist

    Returns:
        Configuration value or default
    """
    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
