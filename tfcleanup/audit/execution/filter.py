"""Query filter -- narrows fetched workspaces to those a query selects."""

from __future__ import annotations

from collections.abc import Sequence

from tfcleanup.audit.models.query import Query, QueryVariable
from tfcleanup.audit.models.workspace import Variable, WorkspaceVariables


def select(entries: Sequence[WorkspaceVariables], query: Query | None) -> list[WorkspaceVariables]:
    """Return the entries ``query`` selects, in input order.

    Every predicate must be matched by at least one variable of the
    workspace.  With no query, or a query without predicates, all entries
    are returned.  Never raises.
    """
    predicates = query.predicates if query is not None else []
    if not predicates:
        return list(entries)
    return [entry for entry in entries if all(matches(p, entry.variables) for p in predicates)]


def matches(predicate: QueryVariable, variables: Sequence[Variable]) -> bool:
    """True if some variable has the predicate's key and exactly its value.

    Sensitive variables come back from the API without a value and so can
    never satisfy a predicate.
    """
    return any(v.key == predicate.key and v.value == predicate.value for v in variables)
