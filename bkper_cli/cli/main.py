"""
Bkper command line interface.

Usage:
    bkper transaction merge ID1 ID2 --book BOOK_ID [--format json]
    bkper config check

Configuration is read from BKPER_* environment variables and a local
.env file (see bkper_cli.config). Command output goes to stdout, logs
and errors go to stderr.
"""

import asyncio
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from bkper_cli import __version__
from bkper_cli.audit import configure_logging
from bkper_cli.cli.render import OutputFormat, render
from bkper_cli.config import get_settings, validate_all_settings
from bkper_cli.models.merge import AmountPolicy, MergeResult
from bkper_cli.orchestrator import create_app_components
from bkper_cli.reconciliation import MergeError
from bkper_cli.services.ledger import LedgerError


app = typer.Typer(
    name="bkper",
    no_args_is_help=True,
    add_completion=False,
    help="Command line tools for Bkper books.",
)
transaction_app = typer.Typer(no_args_is_help=True, help="Work with transactions.")
config_app = typer.Typer(no_args_is_help=True, help="Inspect CLI configuration.")
app.add_typer(transaction_app, name="transaction")
app.add_typer(config_app, name="config")


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def _resolve_format(output_format: Optional[OutputFormat]) -> OutputFormat:
    if output_format is not None:
        return output_format
    return OutputFormat(get_settings().app.default_output_format)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bkper {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Log level for stderr output (defaults to LOG_LEVEL or WARNING).",
        ),
    ] = None,
) -> None:
    """Bkper command line interface."""
    try:
        app_settings = get_settings().app
    except ValidationError as e:
        raise _fail(f"Invalid configuration: {e}")

    configure_logging(
        level=log_level or app_settings.log_level,
        json_output=app_settings.log_json,
    )


async def _merge(
    book_id: str,
    transaction_id1: str,
    transaction_id2: str,
    amount_policy: Optional[AmountPolicy],
) -> MergeResult:
    merge_flow, backend = create_app_components(amount_policy=amount_policy)
    try:
        return await merge_flow.merge_transactions(book_id, transaction_id1, transaction_id2)
    finally:
        await backend.aclose()


@transaction_app.command("merge")
def merge_command(
    transaction_id1: Annotated[str, typer.Argument(help="First transaction id.")],
    transaction_id2: Annotated[str, typer.Argument(help="Second transaction id.")],
    book: Annotated[str, typer.Option("--book", "-b", help="Book id.")],
    output_format: Annotated[
        Optional[OutputFormat],
        typer.Option("--format", "-f", help="Output format."),
    ] = None,
    amount_policy: Annotated[
        Optional[AmountPolicy],
        typer.Option(
            "--amount-policy",
            help="How to handle differing amounts (defaults to BKPER_MERGE_AMOUNT_POLICY).",
        ),
    ] = None,
) -> None:
    """
    Merge two transactions into one.

    The posted (or else most recently created) transaction survives and
    absorbs the other one, which is moved to the trash.
    """
    try:
        resolved_format = _resolve_format(output_format)
        result = asyncio.run(_merge(book, transaction_id1, transaction_id2, amount_policy))
    except (MergeError, LedgerError) as e:
        raise _fail(str(e))
    except ValidationError as e:
        raise _fail(f"Invalid configuration: {e}")

    render(
        result.to_response(),
        resolved_format,
        Console(),
        title="Merged transaction",
    )


@config_app.command("check")
def config_check_command() -> None:
    """Check that every configuration group loads."""
    results = validate_all_settings()

    rows = {
        name: "ok" if valid else str(results.get(f"{name}_error", "invalid"))
        for name, valid in results.items()
        if not name.endswith("_error")
    }
    render(rows, OutputFormat.TABLE, Console(), title="Configuration")

    if not all(value == "ok" for value in rows.values()):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
