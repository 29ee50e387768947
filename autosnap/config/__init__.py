"""Configuration management for autosnap."""

from .types import (
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    RetentionPolicy,
    TrackingPolicy,
)
from .loader import ConfigLoader

__all__ = [
    "DEFAULT_EXCLUDE",
    "DEFAULT_INCLUDE",
    "RetentionPolicy",
    "TrackingPolicy",
    "ConfigLoader",
]
