# ruff: noqa: I001
"""CLI for the ``subscan`` package.

This module exposes callable command handlers (``cmd_scan``,
``cmd_transactions``) and a Typer-based console interface. Environment
variables (``SUBSCAN_LOG_LEVEL``, and ``OPENAI_API_KEY`` for ``--enrich``) are
loaded from a local ``.env`` using ``python-dotenv`` before delegating to
command logic. Detection itself lives in ``subscan.api``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo

from .logging_setup import configure_logging


# ---- Small module-level helpers used by CLI commands -------------------------


def _read_statement(path: Path) -> str | None:
    """Read a statement file, reporting failures to stderr as ``Error: ...``."""

    try:
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {path}", file=sys.stderr)
    except IsADirectoryError:
        print(f"Error: Not a file: {path}", file=sys.stderr)
    except UnicodeDecodeError as e:
        print(f"Error: '{path}' is not UTF-8 text: {e}", file=sys.stderr)
    return None


def _format_row(cells: tuple[str, ...], widths: tuple[int, ...]) -> str:
    return "  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)).rstrip()


def cmd_scan(
    path: str,
    *,
    as_json: bool = False,
    year: int | None = None,
    enrich: bool = False,
) -> int:
    """Detect subscriptions in a statement file and print them to stdout.

    Behavior
    --------
    - Reads ``path`` as UTF-8 text (CSV export, statement lines or a PDF text
      dump).
    - Invokes :func:`subscan.api.parse_statement_text`.
    - With ``enrich``, cleans unrecognised merchant names through
      :func:`subscan.enrichment.enrich_subscriptions`.
    - Prints a table, or a JSON array of camelCase records with ``as_json``.

    Errors are written to stderr and the function returns a non-zero exit
    status. On success, returns ``0``.
    """

    from .api import parse_statement_text

    text = _read_statement(Path(path))
    if text is None:
        return 1

    subs = parse_statement_text(text, fallback_year=year)

    if enrich:
        from .enrichment import enrich_subscriptions

        subs = enrich_subscriptions(subs)

    if as_json:
        print(json.dumps([s.to_dict() for s in subs], indent=2))
        return 0

    if not subs:
        print("No subscriptions detected.")
        return 0

    header = ("NAME", "COST", "FREQUENCY", "NEXT", "CONFIDENCE", "CATEGORY")
    rows = [
        (
            s.name,
            f"£{s.cost:.2f}",
            s.frequency,
            s.next_billing.isoformat() if s.next_billing else "-",
            str(s.confidence),
            s.category,
        )
        for s in subs
    ]
    widths = tuple(max(len(r[i]) for r in [header, *rows]) for i in range(len(header)))
    print(_format_row(header, widths))
    for row in rows:
        print(_format_row(row, widths))
    return 0


def cmd_transactions(path: str, *, year: int | None = None) -> int:
    """Print the canonical transaction list as ``date<TAB>amount<TAB>description``."""

    from .transactions import build_transactions

    text = _read_statement(Path(path))
    if text is None:
        return 1
    for tx in build_transactions(text, year):
        print(f"{tx.date.isoformat()}\t{tx.amount:.2f}\t{tx.description}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Detect recurring subscriptions in UK bank statement text "
        "(CSV exports or PDF text dumps). Loads settings from a local .env."
    ),
)

# Module-level argument object to satisfy ruff B008 (no calls in parameter
# defaults).
STATEMENT_PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Path to a statement file (CSV export or extracted text)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)


@app.command("scan")
def scan_cmd(
    path: Annotated[Path, STATEMENT_PATH_ARGUMENT],
    *,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    year: int | None = typer.Option(
        None, help="Year for dates printed without one (defaults to the current year)."
    ),
    enrich: bool = typer.Option(
        False, help="Clean unrecognised merchant names with OpenAI (needs OPENAI_API_KEY)."
    ),
) -> None:
    """Detect subscriptions in a statement file."""

    rc = cmd_scan(str(path), as_json=as_json, year=year, enrich=enrich)
    if rc:
        raise typer.Exit(rc)


@app.command("transactions")
def transactions_cmd(
    path: Annotated[Path, STATEMENT_PATH_ARGUMENT],
    *,
    year: int | None = typer.Option(
        None, help="Year for dates printed without one (defaults to the current year)."
    ),
) -> None:
    """Print the transactions parsed from a statement file."""

    rc = cmd_transactions(str(path), year=year)
    if rc:
        raise typer.Exit(rc)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    log_level: str | None = typer.Option(
        None, help="Logging level (falls back to SUBSCAN_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging before any
    subcommand runs.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
