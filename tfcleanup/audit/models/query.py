"""Workspace selection query.

A query is a list of ``{key, value}`` predicates.  A workspace is selected
when every predicate is matched by at least one of its variables, where a
match is key equality plus exact (case-sensitive) value equality.  No
predicates selects every workspace.

Example ``settings.toml``::

    [[query.variables]]
    key = "environment"
    value = "staging"
"""

from __future__ import annotations

from pydantic import BaseModel


class QueryVariable(BaseModel):
    """One predicate: a variable named ``key`` whose value equals ``value``."""

    key: str
    value: str


class Query(BaseModel):
    variables: list[QueryVariable] | None = None

    @property
    def predicates(self) -> list[QueryVariable]:
        return self.variables or []
