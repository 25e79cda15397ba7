"""Index filter mini-language.

The server supports freeform index operations on list endpoints. A filter is
given as a flat sequence of string tokens:

    "reverse"
        reverse the order of the results
    "sort" <index>
        sort the results by the native ordering of <index>
    "limit" <n>
        return at most <n> results
    "offset" <n>
        skip <n> results before returning
    <index> "Eq|Lt|Lte|Gt|Gte|Ne" <value>
        compare <index> against <value>
    <index> "Between|Except" <lower> <upper>
        select the inclusive range, or its complement for Except

Operators are case-insensitive. Tokens are consumed left to right; a clause
that runs out of tokens or names an unknown operator is a
:class:`~provision_client.errors.FilterError`.

Example:
    ```python
    compile_filter(["name", "eq", "foo", "limit", "10"])
    # [FilterClause(name="name", op="Eq", values=("foo",)),
    #  FilterClause(name="limit", op=None, values=("10",))]
    ```
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from provision_client.errors import FilterError

SINGLE_VALUE_OPS = frozenset(["Eq", "Lt", "Lte", "Gt", "Gte", "Ne"])
RANGE_OPS = frozenset(["Between", "Except"])
PAGING_KEYWORDS = frozenset(["sort", "limit", "offset"])

_OP_VALUE = re.compile(r"^([A-Za-z]+)\((.*)\)$", re.DOTALL)


@dataclass(frozen=True)
class FilterClause:
    """One compiled filter directive."""

    name: str
    op: str | None = None
    values: tuple[str, ...] = ()

    def to_param(self) -> tuple[str, str]:
        """Render the clause as a single query parameter."""
        if self.name == "reverse" and self.op is None:
            return ("reverse", "true")
        if self.op is None:
            return (self.name, self.values[0])
        return (self.name, f"{self.op}({','.join(self.values)})")


def normalize_op(op: str) -> str:
    """Normalize an operator name to title case ("lte" -> "Lte")."""
    return op.lower().title()


def compile_filter(tokens: Sequence[str]) -> list[FilterClause]:
    """Compile a flat token sequence into filter clauses.

    Raises:
        FilterError: On arity shortfalls or unknown operators.
    """
    clauses: list[FilterClause] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        remaining = len(tokens) - i
        if token == "reverse":
            clauses.append(FilterClause("reverse"))
            i += 1
        elif token in PAGING_KEYWORDS:
            if remaining < 2:
                raise FilterError(f"Invalid Filter: {token} requires exactly one parameter")
            clauses.append(FilterClause(token, None, (tokens[i + 1],)))
            i += 2
        else:
            if remaining < 2:
                raise FilterError(f"Invalid Filter: {token} requires an op and at least 1 parameter")
            op = normalize_op(tokens[i + 1])
            i += 2
            if op in SINGLE_VALUE_OPS:
                if len(tokens) - i < 1:
                    raise FilterError(f"Invalid Filter: {token} op {op} requires 1 parameter")
                clauses.append(FilterClause(token, op, (tokens[i],)))
                i += 1
            elif op in RANGE_OPS:
                if len(tokens) - i < 2:
                    raise FilterError(f"Invalid Filter: {token} op {op} requires 2 parameters")
                clauses.append(FilterClause(token, op, (tokens[i], tokens[i + 1])))
                i += 2
            else:
                raise FilterError(f"Invalid Filter {token}: unknown op {op}")
    return clauses


def filter_params(tokens: Sequence[str]) -> list[tuple[str, str]]:
    """Compile tokens straight to query parameter pairs."""
    return [clause.to_param() for clause in compile_filter(tokens)]


def parse_filter_params(params: Iterable[tuple[str, str]]) -> list[FilterClause]:
    """Turn query parameter pairs back into filter clauses.

    Values of range operators are split on the first comma, so a lower bound
    must not itself contain a comma.

    Raises:
        FilterError: If a parameter is not a valid compiled filter.
    """
    clauses: list[FilterClause] = []
    for name, value in params:
        if name == "reverse":
            clauses.append(FilterClause("reverse"))
            continue
        if name in PAGING_KEYWORDS:
            clauses.append(FilterClause(name, None, (value,)))
            continue
        match = _OP_VALUE.match(value)
        if match is None:
            raise FilterError(f"Invalid Filter parameter {name}={value}")
        op, args = match.group(1), match.group(2)
        if op in SINGLE_VALUE_OPS:
            clauses.append(FilterClause(name, op, (args,)))
        elif op in RANGE_OPS:
            lower, sep, upper = args.partition(",")
            if not sep:
                raise FilterError(f"Invalid Filter parameter {name}={value}: op {op} requires 2 parameters")
            clauses.append(FilterClause(name, op, (lower, upper)))
        else:
            raise FilterError(f"Invalid Filter {name}: unknown op {op}")
    return clauses
