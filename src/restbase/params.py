"""
Module to serialize query string parameters.

A serialization policy is a function that receives a mapping of parameter names to values and
returns a multi-value dictionary of query string parameters. Policies differ only in how they
render sequence values:

  • repeat: a=1&a=2
  • brackets: a[]=1&a[]=2
  • comma: a=1,2
  • indices: a[0]=1&a[1]=2

All policies omit parameters whose value is None, render booleans as "true" or "false", and
flatten nested mappings as key[sub]=value.
"""

import multidict

from collections.abc import Callable, Iterable, Mapping
from typing import Any


Query = multidict.MultiDict

ParamsSerializer = Callable[[Mapping[str, Any]], Query]


def _str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping))


def _serializer(render_sequence: Callable[[Query, str, list[Any]], None]) -> ParamsSerializer:
    def add(query: Query, key: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, Mapping):
            for sub, item in value.items():
                add(query, f"{key}[{sub}]", item)
        elif _is_sequence(value):
            render_sequence(query, key, [v for v in value if v is not None])
        else:
            query.add(key, _str(value))

    def serialize(params: Mapping[str, Any]) -> Query:
        query = Query()
        for key, value in (params or {}).items():
            add(query, key, value)
        return query

    return serialize


def _repeat(query: Query, key: str, values: list[Any]) -> None:
    for value in values:
        query.add(key, _str(value))


def _brackets(query: Query, key: str, values: list[Any]) -> None:
    for value in values:
        query.add(f"{key}[]", _str(value))


def _comma(query: Query, key: str, values: list[Any]) -> None:
    if values:
        query.add(key, ",".join(_str(v) for v in values))


def _indices(query: Query, key: str, values: list[Any]) -> None:
    for index, value in enumerate(values):
        query.add(f"{key}[{index}]", _str(value))


repeat: ParamsSerializer = _serializer(_repeat)
brackets: ParamsSerializer = _serializer(_brackets)
comma: ParamsSerializer = _serializer(_comma)
indices: ParamsSerializer = _serializer(_indices)
