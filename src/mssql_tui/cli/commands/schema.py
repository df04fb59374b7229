"""Schema explorer CLI commands."""

from __future__ import annotations

from typing import Annotated

import typer

from mssql_tui.cli.commands._shared import (
    get_client,
    output_result,
    parse_table_arg,
    text_result,
)
from mssql_tui.cli.helpers import format_number
from mssql_tui.core.exceptions import InputError
from mssql_tui.core.schema import (
    list_columns,
    list_databases,
    list_procedures,
    list_schemas,
    list_tables,
    list_views,
    search_objects,
    server_version,
    table_ddl,
    table_row_count,
)

schema_app = typer.Typer(help="Browse databases, tables, views and procedures")

SchemaOption = Annotated[
    str | None,
    typer.Option("--schema", "-s", help="Only objects in this schema"),
]


@schema_app.callback(invoke_without_command=True)
def schema_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@schema_app.command("version")
def schema_version(ctx: typer.Context) -> None:
    """Show the server version string."""
    with get_client(ctx) as client:
        typer.echo(server_version(client))


@schema_app.command("databases")
def schema_databases(ctx: typer.Context) -> None:
    """List online databases."""
    with get_client(ctx) as client:
        names = list_databases(client)
    output_result(ctx, text_result(["name"], [(n,) for n in names]))


@schema_app.command("schemas")
def schema_schemas(ctx: typer.Context) -> None:
    """List user schemas in the current database."""
    with get_client(ctx) as client:
        names = list_schemas(client)
    output_result(ctx, text_result(["name"], [(n,) for n in names]))


@schema_app.command("tables")
def schema_tables(ctx: typer.Context, schema: SchemaOption = None) -> None:
    """List user tables."""
    with get_client(ctx) as client:
        objects = list_tables(client, schema)
    output_result(ctx, text_result(["schema", "name"], [(o.schema, o.name) for o in objects]))


@schema_app.command("views")
def schema_views(ctx: typer.Context, schema: SchemaOption = None) -> None:
    """List views."""
    with get_client(ctx) as client:
        objects = list_views(client, schema)
    output_result(ctx, text_result(["schema", "name"], [(o.schema, o.name) for o in objects]))


@schema_app.command("procs")
def schema_procs(ctx: typer.Context, schema: SchemaOption = None) -> None:
    """List stored procedures."""
    with get_client(ctx) as client:
        objects = list_procedures(client, schema)
    output_result(ctx, text_result(["schema", "name"], [(o.schema, o.name) for o in objects]))


@schema_app.command("columns")
def schema_columns(
    ctx: typer.Context,
    table_arg: Annotated[str, typer.Argument(help="Table name (schema.table or table)")],
) -> None:
    """Show column definitions and the estimated row count of a table."""
    schema, table = parse_table_arg(table_arg)
    with get_client(ctx) as client:
        columns = list_columns(client, schema, table)
        rows = table_row_count(client, schema, table)
    if not columns:
        msg = f"Table not found: {schema}.{table}"
        raise InputError(msg)
    output_result(
        ctx,
        text_result(
            ["column", "type", "nullable", "pk"],
            [
                (c.name, c.type_label, "YES" if c.is_nullable else "NO", "PK" if c.is_primary_key else "")
                for c in columns
            ],
        ),
    )
    typer.echo(f"{schema}.{table}: ~{format_number(rows)} row(s)", err=True)


@schema_app.command("ddl")
def schema_ddl(
    ctx: typer.Context,
    table_arg: Annotated[str, typer.Argument(help="Table name (schema.table or table)")],
) -> None:
    """Print a CREATE TABLE statement reconstructed from the catalog."""
    schema, table = parse_table_arg(table_arg)
    with get_client(ctx) as client:
        typer.echo(table_ddl(client, schema, table))


@schema_app.command("search")
def schema_search(
    ctx: typer.Context,
    term: Annotated[str, typer.Argument(help="Substring of the object name")],
) -> None:
    """Find tables, views, procedures and functions by name."""
    with get_client(ctx) as client:
        objects = search_objects(client, term)
    output_result(
        ctx,
        text_result(
            ["type", "schema", "name"],
            [(o.object_type.value, o.schema, o.name) for o in objects],
        ),
    )
