"""Shared Fake adapters for testing without unittest.mock.

All Fake implementations follow the Port DI adapter pattern:
real Python classes with preset return values, no AsyncMock/MagicMock.
"""

from tests.fakes.cache import InMemoryResultCache
from tests.fakes.content import FakeContentPort
from tests.fakes.providers import FixedEmbedding, ScriptedChat, SleepRecorder

__all__ = [
    "FakeContentPort",
    "FixedEmbedding",
    "InMemoryResultCache",
    "ScriptedChat",
    "SleepRecorder",
]
