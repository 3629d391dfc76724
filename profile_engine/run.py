"""
Batch runner for the profile engine.

Builds the engine from a config file, seeds it from persisted person
records and writes the graph payload, diagnostics report and store snapshot.

Usage:
    python -m profile_engine.run --config configs/config.yaml --records data/people.json

The runner performs the following steps:
1. Load and validate configuration
2. Load person records (or generate a synthetic population)
3. Initialize the store (rebuilding stale vectors)
4. Cluster and project the current vector set
5. Build the graph snapshot
6. Write diagnostics and the store snapshot
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import datetime

import numpy as np

from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SYNTHETIC_INTERESTS = [
    "hiking", "reading", "music", "movies", "travel", "cooking",
    "gaming", "art", "sports", "photography", "coding", "coffee",
]

SYNTHETIC_INSTITUTIONS = ["Waterloo", "UofT", "McGill", "UBC"]


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def run_engine(
    config_path: str,
    records_path: Optional[str] = None,
    output_dir: Optional[str] = None,
    seed: Optional[int] = None
) -> Dict[str, Any]:
    """
    Run the engine over a set of person records.

    Args:
        config_path: Path to the configuration YAML file
        records_path: Path to a JSON/CSV records file (synthetic population if missing)
        output_dir: If provided, write artifacts here instead of config default
        seed: Overrides global.random_seed

    Returns:
        Dictionary with run results and paths to artifacts
    """
    from .configs import load_config, validate_config
    from .data_loading import load_person_records
    from .evaluation import create_engine_report
    from .service import create_engine_from_config

    # =========================================================================
    # 1. Load and validate configuration
    # =========================================================================
    logger.info("=" * 60)
    logger.info("PROFILE ENGINE RUN")
    logger.info("=" * 60)

    config = load_config(config_path)
    issues = validate_config(config)
    if issues:
        for issue in issues:
            logger.warning(f"Config issue: {issue}")

    setup_logging(config.get("global", {}).get("log_level", "INFO"))

    if seed is not None:
        config.setdefault("global", {})["random_seed"] = seed
        config.setdefault("projection", {})["random_seed"] = seed
    random_seed = config.get("global", {}).get("random_seed", 42)

    effective_output_dir = Path(output_dir or config.get("global", {}).get("output_dir", "artifacts"))
    effective_output_dir.mkdir(parents=True, exist_ok=True)

    engine = create_engine_from_config(config)

    # =========================================================================
    # 2. Load person records
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("STEP 1: Loading Person Records")
    logger.info("=" * 60)

    records = None
    if records_path:
        try:
            records = load_person_records(records_path)
        except FileNotFoundError as e:
            logger.error(f"Person records not found: {e}")

    if records is None:
        logger.info("Creating synthetic population for demonstration...")
        _seed_synthetic_population(engine, n_persons=60, random_seed=random_seed)
    else:
        # =====================================================================
        # 3. Initialize store
        # =====================================================================
        logger.info("\n" + "=" * 60)
        logger.info("STEP 2: Initializing Store")
        logger.info("=" * 60)
        rebuilt = engine.initialize(records)
        logger.info(f"Rebuilt {rebuilt} of {len(records)} vectors")

    # =========================================================================
    # 4. Cluster and project
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("STEP 3: Clustering and Projection")
    logger.info("=" * 60)

    snapshot = engine.snapshot()
    ids, matrix = snapshot.vectors(informative_only=True)
    labels = engine.clusterer.cluster(matrix)
    projection = engine.projector.project(matrix)
    if projection.is_fallback:
        logger.warning("Projection used random fallback coordinates")

    # =========================================================================
    # 5. Graph snapshot
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("STEP 4: Graph Snapshot")
    logger.info("=" * 60)

    graph = engine.graph(mode="embedding", snapshot=snapshot, labels=labels, projection=projection)
    graph_path = effective_output_dir / "graph.json"
    with open(graph_path, "w") as f:
        json.dump(graph.to_dict(), f, indent=2)
    logger.info(f"Saved graph to {graph_path}")

    # =========================================================================
    # 6. Diagnostics and snapshot
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("STEP 5: Diagnostics")
    logger.info("=" * 60)

    report = create_engine_report(matrix, labels, projection.coordinates, projection.is_fallback)
    report_path = effective_output_dir / "engine_report.json"
    report.save(str(report_path))
    logger.info("\n" + report.summary())

    snapshot_path = effective_output_dir / "snapshot.joblib"
    engine.export_snapshot(str(snapshot_path))

    metadata = {
        "engine_version": __version__,
        "run_timestamp": datetime.now().isoformat(),
        "config_path": config_path,
        "records_path": records_path,
        "random_seed": random_seed,
        "n_persons": len(snapshot),
        "n_vectors": len(ids),
    }
    with open(effective_output_dir / "metadata.json", "w") as f:
        json.dump(metadata, f, indent=2)

    logger.info("\n" + "=" * 60)
    logger.info("RUN COMPLETE")
    logger.info("=" * 60)

    return {
        "success": True,
        "output_dir": str(effective_output_dir),
        "artifacts": [str(graph_path), str(report_path), str(snapshot_path)],
        "metadata": metadata
    }


def _seed_synthetic_population(engine, n_persons: int, random_seed: int) -> List[str]:
    """Onboard a synthetic population and run a few conversational turns each."""
    from .traits import TraitProfile

    rng = np.random.RandomState(random_seed)
    signal_names = list(engine.store.trait_model.table.weights)
    ids = []

    for i in range(n_persons):
        person_id = f"user_{i:03d}"
        interests = list(rng.choice(SYNTHETIC_INTERESTS, size=rng.randint(1, 4), replace=False))
        traits = TraitProfile(**dict(zip(
            ["openness", "conscientiousness", "extraversion", "agreeableness", "neuroticism"],
            rng.uniform(0.2, 0.8, size=5)
        )))
        engine.onboard(
            person_id,
            name=f"Student {i}",
            age=int(rng.randint(18, 26)),
            institution=str(rng.choice(SYNTHETIC_INSTITUTIONS)),
            interests=interests,
            traits=traits,
        )

        for _ in range(rng.randint(1, 4)):
            chosen = rng.choice(signal_names, size=2, replace=False)
            signals = {str(s): float(rng.uniform(-0.5, 0.5)) for s in chosen}
            engine.process_turn(
                person_id,
                signals,
                confidence=float(rng.uniform(0.3, 1.0)),
                message_text=f"I spend my weekends on {' and '.join(interests)}",
            )
        ids.append(person_id)

    logger.info(f"Created synthetic population: {n_persons} persons")
    return ids


def main():
    """Main entry point for the runner."""
    parser = argparse.ArgumentParser(
        description="Run the profile engine over a set of person records"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--records",
        type=str,
        default=None,
        help="Path to a JSON or CSV person records file"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (overrides config)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for artifacts (overrides config)"
    )

    args = parser.parse_args()

    try:
        result = run_engine(args.config, records_path=args.records,
                            output_dir=args.output_dir, seed=args.seed)
        if result["success"]:
            logger.info("\nRun completed successfully!")
            return 0
        else:
            logger.error("\nRun failed!")
            return 1
    except Exception as e:
        logger.exception(f"Run failed with error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
