"""
mysql_persistence.persistence.ids

Object id helpers for identifiable persistences.

Responsibilities:
- Read and set the `id` of dicts, pydantic models, dataclasses and plain objects.
- Generate ids for items that do not have one yet.
"""

from __future__ import annotations

import copy
import dataclasses
import uuid
from collections.abc import MutableMapping
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

ID_FIELD = "id"


def next_id() -> str:
    # 32 hex chars; fits the conventional VARCHAR(32) primary key.
    return uuid.uuid4().hex


def get_object_id(obj: Any) -> Any:
    if obj is None:
        return None
    if isinstance(obj, MutableMapping):
        return obj.get(ID_FIELD)
    return getattr(obj, ID_FIELD, None)


def set_object_id(obj: T, value: Any) -> T:
    """
    Return `obj` with its id set. Models and frozen dataclasses are copied; dicts
    and plain objects are updated in place.
    """

    if isinstance(obj, MutableMapping):
        obj[ID_FIELD] = value
        return obj
    if isinstance(obj, BaseModel):
        return obj.model_copy(update={ID_FIELD: value})
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.replace(obj, **{ID_FIELD: value})
    setattr(obj, ID_FIELD, value)
    return obj


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def generate_object_id_if_not_exists(obj: T) -> T:
    if _is_empty(get_object_id(obj)):
        return set_object_id(obj, next_id())
    return obj


def generate_object_map_id_if_not_exists(obj_map: MutableMapping[str, Any]) -> Any:
    """
    Fill in a missing id on a converted row map and return the id.
    """

    if _is_empty(obj_map.get(ID_FIELD)):
        obj_map[ID_FIELD] = next_id()
    return obj_map[ID_FIELD]


def clone(obj: T) -> T:
    if isinstance(obj, BaseModel):
        return obj.model_copy(deep=True)
    return copy.deepcopy(obj)
