"""Utility modules for autosnap."""

from .fs import atomic_write, read_json, read_text, write_text
from .env import get_autosnap_dir, get_global_autosnap_dir, get_store_dir, is_debug_mode

__all__ = [
    "atomic_write",
    "read_text",
    "read_json",
    "write_text",
    "get_autosnap_dir",
    "get_global_autosnap_dir",
    "get_store_dir",
    "is_debug_mode",
]
