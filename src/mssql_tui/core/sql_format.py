"""Lightweight SQL pretty-printer for the query editor.

Puts major clauses on their own lines, breaks select lists after commas
and indents by parenthesis depth. String literals are copied verbatim.
"""

from __future__ import annotations

_INDENT = "    "

_CLAUSE_KEYWORDS = sorted(
    [
        "SELECT",
        "FROM",
        "WHERE",
        "AND",
        "OR",
        "ORDER BY",
        "GROUP BY",
        "HAVING",
        "JOIN",
        "INNER JOIN",
        "LEFT JOIN",
        "RIGHT JOIN",
        "OUTER JOIN",
        "CROSS JOIN",
        "ON",
        "UNION",
        "UNION ALL",
        "INSERT INTO",
        "VALUES",
        "UPDATE",
        "SET",
        "DELETE FROM",
        "CREATE TABLE",
        "ALTER TABLE",
        "DROP TABLE",
    ],
    key=len,
    reverse=True,
)

# Followed by a line break and one extra indent level.
_BREAK_AFTER = {"SELECT", "FROM"}

# Continuation keywords indented one level deeper than the clause.
_NESTED = {"AND", "OR", "ON"}


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _match_keyword(sql: str, i: int) -> str | None:
    if i > 0 and _is_word_char(sql[i - 1]):
        return None
    for keyword in _CLAUSE_KEYWORDS:
        if sql[i : i + len(keyword)].upper() == keyword:
            end = i + len(keyword)
            if end >= len(sql) or not _is_word_char(sql[end]):
                return keyword
    return None


def format_sql(sql: str) -> str:
    """Return sql reformatted with one clause per line."""
    sql = " ".join(sql.split())
    out: list[str] = []
    depth = 0
    i = 0

    def at_line_start() -> bool:
        return not out or out[-1].endswith("\n")

    while i < len(sql):
        ch = sql[i]

        if ch == "'":
            end = i + 1
            while end < len(sql):
                if sql[end] == "'":
                    if end + 1 < len(sql) and sql[end + 1] == "'":
                        end += 2
                        continue
                    break
                end += 1
            out.append(sql[i : end + 1])
            i = end + 1
            continue

        keyword = _match_keyword(sql, i)
        if keyword is not None:
            if out and not at_line_start():
                out.append("\n")
            level = depth + 1 if keyword in _NESTED else depth
            out.append(_INDENT * level + keyword)
            i += len(keyword)
            if keyword in _BREAK_AFTER:
                out.append("\n" + _INDENT * (depth + 1))
            else:
                out.append(" ")
            while i < len(sql) and sql[i].isspace():
                i += 1
            continue

        if ch == "(":
            depth += 1
            out.append(ch)
        elif ch == ")":
            depth = max(depth - 1, 0)
            out.append(ch)
        elif ch == ",":
            out.append(",\n" + _INDENT * (depth + 1))
            i += 1
            while i < len(sql) and sql[i].isspace():
                i += 1
            continue
        else:
            out.append(ch)
        i += 1

    lines = "".join(out).splitlines()
    return "\n".join(line.rstrip() for line in lines).strip()
