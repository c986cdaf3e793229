from .clock import FixedClock, SystemClock
from .event_encoding import build_topics, signature_topic
from .random_source import RandomSource

__all__ = [
    "FixedClock",
    "SystemClock",
    "RandomSource",
    "build_topics",
    "signature_topic",
]
