"""
Backend-neutral query criteria.

Criteria are plain mappings of field name to either a literal (equality) or
one of the condition models below. The primary backend translates them into
MongoDB filters; the fallback backend evaluates them in Python.
"""

from pydantic import BaseModel, ConfigDict
from pymongo import ASCENDING, DESCENDING
from typing import Any, Dict, List, Mapping, Sequence, Tuple
from datetime import datetime

from ..utils.timestamps import as_utc

Criteria = Mapping[str, Any]
SortSpec = Sequence[Tuple[str, int]]

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "Criteria",
    "SortSpec",
    "OneOf",
    "OlderThan",
    "to_mongo_filter",
    "matches",
    "sort_records",
]


class OneOf(BaseModel):
    """Field value must be one of ``values``."""
    model_config = ConfigDict(frozen=True)

    values: Tuple[Any, ...]


class OlderThan(BaseModel):
    """Field holds a timestamp strictly before ``cutoff``, or is unset when ``include_unset``."""
    model_config = ConfigDict(frozen=True)

    cutoff: datetime
    include_unset: bool = True


def to_mongo_filter(criteria: Criteria) -> Dict[str, Any]:
    """Translate criteria into a MongoDB query document."""
    query: Dict[str, Any] = {}
    clauses: List[Dict[str, Any]] = []

    for field, condition in criteria.items():
        if isinstance(condition, OneOf):
            query[field] = {"$in": list(condition.values)}
        elif isinstance(condition, OlderThan):
            before = {field: {"$lt": condition.cutoff}}
            if condition.include_unset:
                # null also matches documents missing the field
                clauses.append({"$or": [{field: None}, before]})
            else:
                query.update(before)
        else:
            query[field] = condition

    if clauses:
        query["$and"] = clauses
    return query


def matches(record: Mapping[str, Any], criteria: Criteria) -> bool:
    """Evaluate criteria against an in-memory record."""
    for field, condition in criteria.items():
        value = record.get(field)
        if isinstance(condition, OneOf):
            if value not in condition.values:
                return False
        elif isinstance(condition, OlderThan):
            if value is None:
                if not condition.include_unset:
                    return False
            elif not isinstance(value, datetime) or as_utc(value) >= as_utc(condition.cutoff):
                return False
        elif value != condition:
            return False
    return True


def _type_rank(value: Any) -> int:
    # MongoDB's cross-type order: null, numbers, strings, objects, arrays, booleans, dates
    if value is None:
        return 0
    if isinstance(value, bool):
        return 5
    if isinstance(value, (int, float)):
        return 1
    if isinstance(value, str):
        return 2
    if isinstance(value, dict):
        return 3
    if isinstance(value, (list, tuple)):
        return 4
    if isinstance(value, datetime):
        return 6
    return 7


def _sort_key(field: str):
    def key(record: Mapping[str, Any]):
        value = record.get(field)
        rank = _type_rank(value)
        if rank == 6:
            value = as_utc(value)
        elif rank in (0, 3, 4, 7):
            # compared by type only
            value = None
        return (rank, value) if value is not None else (rank,)
    return key


def sort_records(records: List[Dict[str, Any]], sort: SortSpec) -> List[Dict[str, Any]]:
    """Multi-key stable sort following a MongoDB style sort spec."""
    for field, direction in reversed(list(sort)):
        records.sort(key=_sort_key(field), reverse=direction == DESCENDING)
    return records
