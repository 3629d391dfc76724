"""
Service module for the profile engine.

This module provides the engine facade used by the chat, graph and
match-explanation collaborators.
"""

from .engine import ProfileEngine, create_engine_from_config

__all__ = [
    "ProfileEngine",
    "create_engine_from_config",
]
