"""
Loading and saving of person records.

This module is the seam to the persistence collaborator. Records are read
from JSON (a list of record objects) or CSV (one row per person, traits as
named float columns, interests as a "|"-separated string, vector as a JSON
array string). Store state is snapshotted with joblib.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, List

import joblib
import numpy as np
import pandas as pd

from ..store.records import PersonRecord
from ..traits.trait_model import TRAIT_NAMES

logger = logging.getLogger(__name__)

INTEREST_SEPARATOR = "|"


def load_person_records(filepath: str) -> List[PersonRecord]:
    """
    Load person records from a JSON or CSV file.

    Args:
        filepath: Path to a .json or .csv records file

    Returns:
        List of PersonRecord

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the format is unsupported or required columns are missing
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Person records file not found: {filepath}")

    logger.info(f"Loading person records from {filepath}")
    suffix = path.suffix.lower()
    if suffix == ".json":
        with open(filepath, "r") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("records", [])
        records = [PersonRecord.from_dict(row) for row in data]
    elif suffix == ".csv":
        df = pd.read_csv(filepath)
        records = frame_to_records(df)
    else:
        raise ValueError(f"Unsupported records format: {suffix}")

    logger.info(f"Loaded {len(records)} person records")
    return records


def frame_to_records(df: pd.DataFrame) -> List[PersonRecord]:
    """Convert a flat DataFrame (see records_to_frame) into PersonRecords."""
    id_column = "id" if "id" in df.columns else "person_id"
    if id_column not in df.columns:
        raise ValueError("Records frame needs an 'id' column")

    records = []
    for row in df.to_dict(orient="records"):
        row = {k: (None if _is_missing(v) else v) for k, v in row.items()}
        interests = row.get("interests") or ""
        vector = row.get("vector")
        records.append(PersonRecord.from_dict({
            "id": str(row[id_column]),
            "name": row.get("name"),
            "age": row.get("age"),
            "institution": row.get("institution", row.get("uni")),
            "traits": {name: row[name] for name in TRAIT_NAMES if row.get(name) is not None},
            "interests": [t for t in str(interests).split(INTEREST_SEPARATOR) if t],
            "confidence": row.get("confidence"),
            "vector": json.loads(vector) if isinstance(vector, str) and vector else None,
        }))
    return records


def records_to_frame(records: List[PersonRecord]) -> pd.DataFrame:
    """
    Flatten records into one row per person.

    Traits become named float columns, interests a "|"-joined string and
    the vector a JSON array string.
    """
    rows = []
    for record in records:
        row = {
            "id": record.person_id,
            "name": record.name,
            "age": record.age,
            "institution": record.institution,
        }
        row.update(record.traits.to_dict())
        row["interests"] = INTEREST_SEPARATOR.join(record.interests)
        row["confidence"] = record.confidence
        row["vector"] = json.dumps([float(v) for v in record.vector])
        rows.append(row)

    columns = ["id", "name", "age", "institution", *TRAIT_NAMES, "interests", "confidence", "vector"]
    return pd.DataFrame(rows, columns=columns)


def save_person_records(records: List[PersonRecord], filepath: str) -> None:
    """Save records as JSON or CSV, chosen by file extension."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".csv":
        records_to_frame(records).to_csv(path, index=False)
    else:
        with open(path, "w") as f:
            json.dump([r.to_dict() for r in records], f, indent=2)
    logger.info(f"Saved {len(records)} person records to {filepath}")


def save_snapshot(state: Dict[str, Any], filepath: str) -> None:
    """Persist exported store state (records + semantic memory) with joblib."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(state, path)
    logger.info(f"Saved store snapshot ({len(state.get('records', []))} records) to {filepath}")


def load_snapshot(filepath: str) -> Dict[str, Any]:
    """Load store state written by save_snapshot."""
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Store snapshot not found: {filepath}")
    state = joblib.load(path)
    logger.info(f"Loaded store snapshot from {filepath}")
    return state


def _is_missing(value: Any) -> bool:
    return isinstance(value, float) and np.isnan(value)
