"""SQL Server catalog introspection and the schema tree.

Framework-agnostic business logic. The CLI ``schema`` commands and the
interactive schema panel both build on these functions. Every catalog
lookup takes its filters as query parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from mssql_tui.core.rewriter import quote_identifier

if TYPE_CHECKING:
    from mssql_tui.core.client import Connection

NodePath = tuple[int, ...]


class ObjectType(StrEnum):
    DATABASE = "Database"
    SCHEMA = "Schema"
    TABLE = "Table"
    VIEW = "View"
    PROCEDURE = "Procedure"
    FUNCTION = "Function"
    COLUMN = "Column"


@dataclass
class DatabaseObject:
    schema: str
    name: str
    object_type: ObjectType

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass
class ColumnDef:
    name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None

    @property
    def type_label(self) -> str:
        data_type = self.data_type.lower()
        if data_type in ("varchar", "nvarchar", "char", "nchar", "varbinary", "binary"):
            if self.max_length == -1:
                return f"{data_type.upper()}(MAX)"
            length = self.max_length or 0
            if data_type.startswith("n") and length > 0:
                length //= 2
            return f"{data_type.upper()}({length})"
        if data_type in ("decimal", "numeric"):
            precision = self.precision if self.precision is not None else 18
            scale = self.scale if self.scale is not None else 0
            return f"{data_type.upper()}({precision}, {scale})"
        return data_type.upper()


def _rows(conn: Connection, sql: str, params: dict[str, Any] | None = None) -> list[tuple[Any, ...]]:
    rows: list[tuple[Any, ...]] = []
    for result_set in conn.run_batch(sql, params):
        rows.extend(result_set.rows)
    return rows


def server_version(conn: Connection) -> str:
    """First line of @@VERSION, e.g. ``Microsoft SQL Server 2022 ...``."""
    rows = _rows(conn, "SELECT @@VERSION")
    if not rows or not rows[0] or rows[0][0] is None:
        return "Unknown"
    return str(rows[0][0]).splitlines()[0].strip()


def list_databases(conn: Connection) -> list[str]:
    rows = _rows(conn, "SELECT name FROM sys.databases WHERE state = 0 ORDER BY name")
    return [str(r[0]) for r in rows]


def list_schemas(conn: Connection) -> list[str]:
    rows = _rows(conn, "SELECT name FROM sys.schemas WHERE schema_id < 16384 ORDER BY name")
    return [str(r[0]) for r in rows]


_OBJECTS_SQL = """
SELECT s.name AS schema_name, o.name AS object_name
FROM sys.{view} o
INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
{where}
ORDER BY s.name, o.name
"""

_OBJECT_VIEWS: dict[ObjectType, str] = {
    ObjectType.TABLE: "tables",
    ObjectType.VIEW: "views",
    ObjectType.PROCEDURE: "procedures",
}


def _list_objects(
    conn: Connection, object_type: ObjectType, schema: str | None
) -> list[DatabaseObject]:
    where = "WHERE s.name = %(schema)s" if schema else ""
    sql = _OBJECTS_SQL.format(view=_OBJECT_VIEWS[object_type], where=where)
    params = {"schema": schema} if schema else None
    return [
        DatabaseObject(schema=str(r[0] or "dbo"), name=str(r[1] or ""), object_type=object_type)
        for r in _rows(conn, sql, params)
    ]


def list_tables(conn: Connection, schema: str | None = None) -> list[DatabaseObject]:
    return _list_objects(conn, ObjectType.TABLE, schema)


def list_views(conn: Connection, schema: str | None = None) -> list[DatabaseObject]:
    return _list_objects(conn, ObjectType.VIEW, schema)


def list_procedures(conn: Connection, schema: str | None = None) -> list[DatabaseObject]:
    return _list_objects(conn, ObjectType.PROCEDURE, schema)


_COLUMNS_SQL = """
SELECT
    c.name AS column_name,
    t.name AS data_type,
    c.is_nullable,
    ISNULL(pk.is_primary_key, 0) AS is_primary_key,
    c.max_length,
    c.precision,
    c.scale
FROM sys.columns c
INNER JOIN sys.types t ON c.user_type_id = t.user_type_id
INNER JOIN sys.objects tbl ON c.object_id = tbl.object_id
INNER JOIN sys.schemas s ON tbl.schema_id = s.schema_id
LEFT JOIN (
    SELECT ic.column_id, ic.object_id, 1 AS is_primary_key
    FROM sys.index_columns ic
    INNER JOIN sys.indexes i ON ic.object_id = i.object_id AND ic.index_id = i.index_id
    WHERE i.is_primary_key = 1
) pk ON c.object_id = pk.object_id AND c.column_id = pk.column_id
WHERE s.name = %(schema)s AND tbl.name = %(table)s
ORDER BY c.column_id
"""


def _opt_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def list_columns(conn: Connection, schema: str, table: str) -> list[ColumnDef]:
    return [
        ColumnDef(
            name=str(r[0]),
            data_type=str(r[1]),
            is_nullable=bool(r[2]) if r[2] is not None else True,
            is_primary_key=bool(r[3]),
            max_length=_opt_int(r[4]),
            precision=_opt_int(r[5]),
            scale=_opt_int(r[6]),
        )
        for r in _rows(conn, _COLUMNS_SQL, {"schema": schema, "table": table})
    ]


def table_row_count(conn: Connection, schema: str, table: str) -> int:
    """Row count estimate from partition metadata."""
    sql = """
    SELECT SUM(p.rows) AS row_count
    FROM sys.partitions p
    INNER JOIN sys.tables t ON p.object_id = t.object_id
    INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
    WHERE s.name = %(schema)s AND t.name = %(table)s AND p.index_id IN (0, 1)
    """
    rows = _rows(conn, sql, {"schema": schema, "table": table})
    if not rows or rows[0][0] is None:
        return 0
    return int(rows[0][0])


def table_ddl(conn: Connection, schema: str, table: str) -> str:
    """Reconstruct a CREATE TABLE statement from column metadata."""
    columns = list_columns(conn, schema, table)
    lines = []
    for col in columns:
        nullable = "NULL" if col.is_nullable else "NOT NULL"
        pk = " PRIMARY KEY" if col.is_primary_key else ""
        lines.append(f"    {quote_identifier(col.name)} {col.type_label} {nullable}{pk}")
    body = ",\n".join(lines)
    return f"CREATE TABLE {quote_identifier(schema)}.{quote_identifier(table)} (\n{body}\n);"


_OBJECT_TYPE_DESCS: dict[str, ObjectType] = {
    "USER_TABLE": ObjectType.TABLE,
    "VIEW": ObjectType.VIEW,
    "SQL_STORED_PROCEDURE": ObjectType.PROCEDURE,
}


def search_objects(conn: Connection, term: str) -> list[DatabaseObject]:
    """Tables, views, procedures and functions whose name contains term."""
    sql = """
    SELECT s.name AS schema_name, o.name AS object_name, o.type_desc
    FROM sys.objects o
    INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
    WHERE o.name LIKE %(pattern)s AND o.type IN ('U', 'V', 'P', 'FN', 'IF', 'TF')
    ORDER BY o.type, s.name, o.name
    """
    escaped = term.replace("[", "[[]").replace("%", "[%]").replace("_", "[_]")
    return [
        DatabaseObject(
            schema=str(r[0] or "dbo"),
            name=str(r[1] or ""),
            object_type=_OBJECT_TYPE_DESCS.get(str(r[2]), ObjectType.FUNCTION),
        )
        for r in _rows(conn, sql, {"pattern": f"%{escaped}%"})
    ]


# ---------------------------------------------------------------------------
# Schema tree (used by the interactive schema panel)
# ---------------------------------------------------------------------------


class NodeKind(StrEnum):
    FOLDER = "folder"
    TABLE = "table"
    VIEW = "view"
    PROCEDURE = "procedure"
    COLUMN = "column"


@dataclass
class SchemaNode:
    name: str
    kind: NodeKind
    schema: str | None = None
    expanded: bool = False
    children: list[SchemaNode] = field(default_factory=list)

    @classmethod
    def folder(cls, name: str) -> SchemaNode:
        return cls(name=name, kind=NodeKind.FOLDER)

    @property
    def is_relation(self) -> bool:
        return self.kind in (NodeKind.TABLE, NodeKind.VIEW)

    @property
    def object_name(self) -> str:
        """Name without the schema prefix used for display."""
        if self.schema and self.name.startswith(f"{self.schema}."):
            return self.name[len(self.schema) + 1 :]
        return self.name


_NODE_KINDS: dict[ObjectType, NodeKind] = {
    ObjectType.TABLE: NodeKind.TABLE,
    ObjectType.VIEW: NodeKind.VIEW,
    ObjectType.PROCEDURE: NodeKind.PROCEDURE,
}


def _object_node(obj: DatabaseObject) -> SchemaNode:
    return SchemaNode(name=obj.qualified_name, kind=_NODE_KINDS[obj.object_type], schema=obj.schema)


def build_schema_tree(conn: Connection) -> list[SchemaNode]:
    """Tables, Views and Stored Procedures folders, each listing its objects."""
    tables = SchemaNode.folder("Tables")
    tables.children = [_object_node(o) for o in list_tables(conn)]
    views = SchemaNode.folder("Views")
    views.children = [_object_node(o) for o in list_views(conn)]
    procs = SchemaNode.folder("Stored Procedures")
    procs.children = [_object_node(o) for o in list_procedures(conn)]
    return [tables, views, procs]


def visible_nodes(tree: list[SchemaNode]) -> list[tuple[NodePath, int, SchemaNode]]:
    """Flatten the expanded part of the tree into (path, depth, node) rows."""
    out: list[tuple[NodePath, int, SchemaNode]] = []

    def walk(nodes: list[SchemaNode], prefix: NodePath) -> None:
        for index, node in enumerate(nodes):
            path = (*prefix, index)
            out.append((path, len(prefix), node))
            if node.expanded:
                walk(node.children, path)

    walk(tree, ())
    return out


def node_at(tree: list[SchemaNode], path: NodePath) -> SchemaNode | None:
    nodes = tree
    node: SchemaNode | None = None
    for index in path:
        if not 0 <= index < len(nodes):
            return None
        node = nodes[index]
        nodes = node.children
    return node


def toggle_node(tree: list[SchemaNode], path: NodePath) -> SchemaNode | None:
    """Flip expansion of the node at path. Returns the node, or None if absent."""
    node = node_at(tree, path)
    if node is not None:
        node.expanded = not node.expanded
    return node


def load_columns_into(conn: Connection, node: SchemaNode) -> None:
    """Fill a table/view node with its column children."""
    if not node.is_relation or node.schema is None:
        return
    node.children = [
        SchemaNode(
            name=f"{col.name} ({col.type_label})",
            kind=NodeKind.COLUMN,
            schema=node.schema,
        )
        for col in list_columns(conn, node.schema, node.object_name)
    ]
