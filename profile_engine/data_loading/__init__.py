"""Data loading module for person records and store snapshots."""

from .loaders import (
    load_person_records,
    save_person_records,
    records_to_frame,
    frame_to_records,
    save_snapshot,
    load_snapshot,
)

__all__ = [
    "load_person_records",
    "save_person_records",
    "records_to_frame",
    "frame_to_records",
    "save_snapshot",
    "load_snapshot",
]
