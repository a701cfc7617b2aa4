from typing import TYPE_CHECKING, Any, Optional

import msgspec
import rich_click as click
from rich import get_console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from click import Group

    from sqllibrarian.config import LibrarianConfig
    from sqllibrarian.librarian import Librarian

__all__ = ("get_librarian_group", "main")


def _build_librarian(config: "LibrarianConfig") -> "Librarian":
    from sqllibrarian.librarian import Librarian

    return Librarian(config)


def _decode_context(data: Optional[str]) -> "dict[str, Any]":
    if data is None:
        return {}
    try:
        decoded = msgspec.json.decode(data)
    except msgspec.DecodeError as e:
        msg = f"Invalid JSON: {e}"
        raise click.BadParameter(msg, param_hint="--data") from e
    if not isinstance(decoded, dict):
        msg = "Expected a JSON object"
        raise click.BadParameter(msg, param_hint="--data")
    return decoded


def get_librarian_group() -> "Group":
    """Get the sqllibrarian CLI group.

    Returns:
        The sqllibrarian CLI group with every command attached.
    """
    console = get_console()

    @click.group(name="sqllibrarian")
    @click.option(
        "--lib",
        "lib",
        help="Directory to search for templates. Repeat to search several directories in order.",
        type=click.Path(file_okay=False),
        multiple=True,
        default=("sql",),
        show_default=True,
    )
    @click.option("--extension", help="Template file extension.", type=str, default="sql", show_default=True)
    @click.option(
        "--many-per-file",
        help="Read 'tag: ... ;;' blocks from every template file instead of one template per file.",
        is_flag=True,
        default=False,
    )
    @click.option(
        "--database",
        help="sqlite3 database to open. Defaults to $SQLLIBRARIAN_DATABASE or an in-memory database.",
        type=str,
        default=None,
    )
    @click.option(
        "--no-validate",
        help="Skip checking statements against the database when they are prepared.",
        is_flag=True,
        default=False,
    )
    @click.option("--trace", help="Print trace output on stderr.", is_flag=True, default=False)
    @click.option(
        "--log-level",
        help="Send library logs at this level and above to stderr.",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
        default=None,
    )
    @click.option(
        "--log-format",
        help="Format of the records written by --log-level.",
        type=click.Choice(["structured", "simple"]),
        default="structured",
        show_default=True,
    )
    @click.pass_context
    def librarian_group(
        ctx: "click.Context",
        lib: "tuple[str, ...]",
        extension: str,
        many_per_file: bool,
        database: Optional[str],
        no_validate: bool,
        trace: bool,
        log_level: Optional[str],
        log_format: str,
    ) -> None:
        """Run SQL templates from a template library."""
        from sqllibrarian.archive import ManyPerFileArchiver
        from sqllibrarian.config import LibrarianConfig
        from sqllibrarian.exceptions import ImproperConfigurationError
        from sqllibrarian.utils.logging import configure_logging

        ctx.ensure_object(dict)
        if log_level is not None:
            configure_logging(log_level, log_format)
        settings: dict[str, Any] = {
            "lib": lib,
            "extension": extension,
            "trace": trace,
            "validate_sql": not no_validate,
        }
        if many_per_file:
            settings["archiver"] = ManyPerFileArchiver(lib, extension)
        if database is not None:
            settings["database"] = database
        try:
            ctx.obj["config"] = LibrarianConfig(**settings)
        except ImproperConfigurationError as e:
            console.print(f"[red]Error in configuration: {escape(str(e))}[/]")
            ctx.exit(1)

    @librarian_group.command(name="toc", help="List the tags available in the template library.")
    @click.pass_context
    def toc(ctx: "click.Context") -> None:  # pyright: ignore[reportUnusedFunction]
        """List available tags."""
        with _build_librarian(ctx.obj["config"]) as librarian:
            tags = librarian.toc()

        if not tags:
            console.print("[yellow]No templates found[/]")
            return
        table = Table(title="Templates")
        table.add_column("Tag", style="cyan")
        for tag in tags:
            table.add_row(tag)
        console.print(table)

    @librarian_group.command(name="prepare", help="Compile templates without running them.")
    @click.argument("tags", nargs=-1, required=True)
    @click.pass_context
    def prepare(ctx: "click.Context", tags: "tuple[str, ...]") -> None:  # pyright: ignore[reportUnusedFunction]
        """Compile each tag and report the first failure."""
        from sqllibrarian.exceptions import LibrarianError

        with _build_librarian(ctx.obj["config"]) as librarian:
            for tag in tags:
                try:
                    librarian.prepare(tag)
                except LibrarianError as e:
                    console.print(f"[red]Failed to prepare {escape(tag)}: {escape(str(e))}[/]")
                    ctx.exit(1)
                console.print(f"[green]Prepared {escape(tag)}[/]")

    @librarian_group.command(name="execute", help="Run a template and print the resulting data.")
    @click.argument("tag")
    @click.option("--data", help="Input data as a JSON object.", type=str, default=None)
    @click.option("--no-commit", help="Roll back instead of committing.", is_flag=True, default=False)
    @click.pass_context
    def execute(ctx: "click.Context", tag: str, data: Optional[str], no_commit: bool) -> None:  # pyright: ignore[reportUnusedFunction]
        """Run a tag against the given data."""
        from sqllibrarian.exceptions import LibrarianError

        context = _decode_context(data)
        with _build_librarian(ctx.obj["config"]) as librarian:
            if no_commit:
                librarian.delaycommit()
            try:
                affected = librarian.execute(tag, context)
            except LibrarianError as e:
                console.print(f"[red]Failed to execute {escape(tag)}: {escape(str(e))}[/]")
                ctx.exit(1)
            if no_commit:
                librarian.rollback()
                console.print("[yellow]Changes rolled back[/]")

        console.print(f"[green]{affected} row(s) affected[/]")
        console.print_json(msgspec.json.encode(context, enc_hook=str).decode())

    return librarian_group


def main() -> None:
    """Console script entry point."""
    get_librarian_group()()
