"""CLI for the ``annual_eat`` package.

Each subcommand is a thin Typer wrapper around a ``cmd_*`` handler that
returns a process exit code, so the handlers can be called directly from
tests and scripts. Environment variables (jAccount credentials, endpoint
overrides) are loaded from a local ``.env`` with ``python-dotenv`` in the root
callback, which also configures logging.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .api import build_report
from .config import Settings
from .errors import AnnualEatError
from .logging_setup import configure_logging
from .models import EatResponse, Report
from .render import render_report, top_merchants

console = Console()
err_console = Console(stderr=True)


def _error(message: str) -> int:
    err_console.print(f"[red]Error:[/red] {message}")
    return 1


def _settings() -> Settings:
    try:
        return Settings.from_env()
    except AnnualEatError as e:
        raise typer.Exit(_error(str(e))) from e


def _parse_day(value: str, name: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise typer.BadParameter(f"{name} must be YYYY-MM-DD, got {value!r}") from e


def load_transactions_file(path: Path) -> EatResponse:
    """Read a saved transactions body.

    Accepts the upstream body itself (``{"entities": [...], "errno": 0}``) or
    the HTTP service's fetch response wrapping it in ``{"data": ...}``.
    """

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict) and "entities" not in payload and "data" in payload:
        payload = payload["data"]
    return EatResponse.model_validate(payload)


def _load_report(input_path: Path) -> Report | int:
    try:
        data = load_transactions_file(input_path)
    except FileNotFoundError:
        return _error(f"File not found: {input_path}")
    except OSError as e:
        return _error(f"Cannot read {input_path}: {e.strerror or e}")
    except UnicodeDecodeError as e:
        return _error(f"{input_path} is not UTF-8 text: {e.reason} at byte {e.start}")
    except json.JSONDecodeError as e:
        return _error(f"Failed to parse JSON in {input_path}: {e}")
    except ValidationError as e:
        return _error(f"Unexpected transactions layout in {input_path}: {e}")

    try:
        return build_report(data.raw_transactions())
    except AnnualEatError as e:
        return _error(str(e))


def _write_report(report: Report, output: Path | None) -> Path:
    target = output or Path(f"annual_report_{report.year}.html")
    target.write_text(render_report(report), encoding="utf-8")
    return target


# ---- Command handlers -------------------------------------------------------


def cmd_authorize_url(settings: Settings) -> int:
    from .jaccount import authorization_url

    try:
        url, state = authorization_url(settings)
    except AnnualEatError as e:
        return _error(str(e))
    console.print(url, soft_wrap=True)
    console.print(f"[dim]state:[/dim] {state}")
    return 0


def cmd_fetch(settings: Settings, code: str, start: date, end: date, output: Path) -> int:
    """Exchange ``code``, download the transactions and save them as JSON."""

    from .jaccount import fetch_with_code

    try:
        data = fetch_with_code(settings, code, start, end)
    except (AnnualEatError, ValueError) as e:
        return _error(str(e))

    output.write_text(
        json.dumps(data.model_dump(by_alias=True), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    console.print(f"[green]Saved[/green] {len(data.entities)} transactions to {output}")
    return 0


def cmd_report(input_path: Path, output: Path | None) -> int:
    """Build the HTML report from a saved transactions file."""

    report = _load_report(input_path)
    if isinstance(report, int):
        return report
    target = _write_report(report, output)
    console.print(f"[green]Wrote[/green] {report.year} report to {target}")
    return 0


def cmd_summary(input_path: Path) -> int:
    """Print the report highlights as a table."""

    report = _load_report(input_path)
    if isinstance(report, int):
        return report
    console.print(summary_table(report))
    return 0


def cmd_run(
    settings: Settings, code: str, start: date, end: date, output: Path | None
) -> int:
    """Fetch the transactions and write the HTML report in one go."""

    from .jaccount import fetch_with_code

    try:
        data = fetch_with_code(settings, code, start, end)
        report = build_report(data.raw_transactions())
    except (AnnualEatError, ValueError) as e:
        return _error(str(e))

    target = _write_report(report, output)
    console.print(f"[green]Wrote[/green] {report.year} report to {target}")
    return 0


def summary_table(report: Report) -> Table:
    table = Table(title=f"SJTU {report.year} 思源码年度报告", show_header=False)
    table.add_column("item", style="cyan")
    table.add_column("value")

    table.add_row("总消费", f"¥{report.total_amount:.2f}")
    fm = report.first_meal
    table.add_row("第一笔消费", f"{fm.location} {fm.time} ¥{fm.amount:.2f}")
    mm = report.max_meal
    table.add_row("单笔最高", f"{mm.location} {mm.time} ¥{mm.amount:.2f}")
    table.add_row(
        "最常光顾",
        f"{report.most_frequent_location} {report.most_frequent_count} 次 "
        f"¥{report.most_frequent_amount:.2f}",
    )
    table.add_row(
        "消费最多",
        f"{report.most_spent_location} ¥{report.most_spent_amount:.2f} "
        f"({report.most_spent_count} 次)",
    )
    table.add_row(
        "早餐 / 午餐 / 晚餐",
        f"{report.breakfast_count} / {report.lunch_count} / {report.dinner_count}",
    )
    em = report.earliest_meal
    table.add_row("最早的一餐", f"{em.location} {em.time} ¥{em.amount:.2f}")
    table.add_row("消费最多的月份", f"{report.peak_month} 月 ¥{report.peak_month_amount:.2f}")
    for name, amount in top_merchants(report):
        table.add_row(f"  {name}", f"¥{amount:.2f}")
    return table


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Build a yearly campus-card spending report from jAccount transactions. "
        "Loads jAccount credentials from a local .env before running."
    ),
)

CodeOption = Annotated[str, typer.Option("--code", help="jAccount authorization code.")]
StartOption = Annotated[str, typer.Option("--start", help="First day (YYYY-MM-DD).")]
EndOption = Annotated[str, typer.Option("--end", help="Last day (YYYY-MM-DD), inclusive.")]
InputOption = Annotated[
    Path,
    typer.Option("--input", "-i", dir_okay=False, help="Saved transactions JSON file."),
]


@app.command("authorize-url")
def authorize_url_cmd() -> None:
    """Print the jAccount authorization URL and its state value."""

    raise typer.Exit(cmd_authorize_url(_settings()))


@app.command("fetch")
def fetch_cmd(
    code: CodeOption,
    start: StartOption,
    end: EndOption,
    output: Annotated[
        Path, typer.Option("--output", "-o", dir_okay=False, help="Where to save the JSON.")
    ] = Path("transactions.json"),
) -> None:
    """Download transactions for a date range and save them as JSON."""

    raise typer.Exit(
        cmd_fetch(
            _settings(),
            code,
            _parse_day(start, "--start"),
            _parse_day(end, "--end"),
            output,
        )
    )


@app.command("report")
def report_cmd(
    input_path: InputOption,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", dir_okay=False, help="HTML file to write.")
    ] = None,
) -> None:
    """Render the HTML report from a saved transactions file."""

    raise typer.Exit(cmd_report(input_path, output))


@app.command("summary")
def summary_cmd(input_path: InputOption) -> None:
    """Print the report highlights to the terminal."""

    raise typer.Exit(cmd_summary(input_path))


@app.command("run")
def run_cmd(
    code: CodeOption,
    start: StartOption,
    end: EndOption,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", dir_okay=False, help="HTML file to write.")
    ] = None,
) -> None:
    """Fetch transactions and write the HTML report."""

    raise typer.Exit(
        cmd_run(
            _settings(),
            code,
            _parse_day(start, "--start"),
            _parse_day(end, "--end"),
            output,
        )
    )


@app.command("serve")
def serve_cmd(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8787,
) -> None:
    """Run the HTTP service."""

    import uvicorn

    from .server import create_app

    uvicorn.run(create_app(), host=host, port=port)


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps variables that are already set.
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via the console script
    main()
