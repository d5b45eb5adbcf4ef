"""
Dialect-aware JSON row aggregation for correlated sub-queries.

``json_rows({"key": column, ...})`` renders as
``json_agg(json_build_object('key', column, ...))`` on PostgreSQL and
``json_group_array(json_object('key', column, ...))`` on SQLite. The result
is a JSON array as text (PostgreSQL yields NULL when no rows match).

Reference: https://docs.sqlalchemy.org/en/20/core/compiler.html
"""

from typing import Any, Mapping

from sqlalchemy import Text, literal_column
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement


class json_rows(FunctionElement):
    type = Text()
    name = "json_rows"
    inherit_cache = True

    def __init__(self, columns: Mapping[str, Any]):
        pairs = []
        for key, column in columns.items():
            # Keys are code constants; inline them so PostgreSQL never has to
            # infer a type for a bound parameter inside json_build_object
            pairs.append(literal_column(f"'{key}'"))
            pairs.append(column)
        super().__init__(*pairs)


@compiles(json_rows)
def _compile_json_rows(element, compiler, **kw):
    return "json_agg(json_build_object(%s))" % compiler.process(element.clauses, **kw)


@compiles(json_rows, "sqlite")
def _compile_json_rows_sqlite(element, compiler, **kw):
    return "json_group_array(json_object(%s))" % compiler.process(element.clauses, **kw)
