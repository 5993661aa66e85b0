"""
Persistence backends for the blood bank store.

The primary backend talks to MongoDB; the fallback keeps collections in
memory and mirrors them to a JSON file.
"""

from .base import RecordBackend, UNIQUE_KEYS
from .fallback import JsonFileBackend
from .primary import MongoBackend
from .query import OneOf, OlderThan, ASCENDING, DESCENDING

__all__ = [
    "RecordBackend",
    "UNIQUE_KEYS",
    "JsonFileBackend",
    "MongoBackend",
    "OneOf",
    "OlderThan",
    "ASCENDING",
    "DESCENDING",
]
