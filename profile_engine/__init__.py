"""
Profile Engine - Signal-to-Vector Profile & Similarity Engine

This package incrementally builds a numeric compatibility profile of a
person from conversational signals and uses it to find, explain and
visualize similar people.

Key Design Decisions:
- Five bounded Big Five traits are nudged by small, confidence-scaled steps
- Traits and a slowly-adapting semantic memory are fused into one unit vector
- All matching is exact cosine similarity over the current vector set
- Clustering and projection are read-only scans over a store snapshot
"""

__version__ = "1.0.0"
