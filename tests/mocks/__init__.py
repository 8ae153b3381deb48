"""
Mock implementations for testing cachemover components.

This package provides mock implementations of external dependencies and
system interactions to enable isolated, deterministic testing.
"""

from .environment import MemoryEnvironmentStore
from .process import FakeRunner
from .prompts import ScriptedInput

__all__ = [
    "MemoryEnvironmentStore",
    "FakeRunner",
    "ScriptedInput",
]
