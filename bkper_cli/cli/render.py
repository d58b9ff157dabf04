"""
Output rendering for CLI commands.

Every command produces a plain dict (the API-shaped response) and hands
it to render(). Three formats are supported:

- json: the response, pretty-printed
- csv: one "field,value" row per leaf, nested keys joined with dots
- table: the same rows in a rich table
"""

import csv
import io
import json
from enum import Enum
from typing import Any, Iterator

from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def flatten(data: Any, prefix: str = "") -> Iterator[tuple[str, str]]:
    """Yield (dotted_key, text) for every leaf of a nested dict/list."""
    if isinstance(data, dict):
        for key, value in data.items():
            yield from flatten(value, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(data, list):
        if not data:
            yield prefix, ""
        for index, value in enumerate(data):
            yield from flatten(value, f"{prefix}[{index}]")
    elif data is None:
        yield prefix, ""
    elif isinstance(data, bool):
        yield prefix, "true" if data else "false"
    else:
        yield prefix, str(data)


def render_json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def render_csv(data: dict[str, Any]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["field", "value"])
    writer.writerows(flatten(data))
    return buffer.getvalue()


def render_table(data: dict[str, Any], title: str | None = None) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Field", no_wrap=True)
    table.add_column("Value")
    for key, value in flatten(data):
        table.add_row(key, value)
    return table


def render(
    data: dict[str, Any],
    output_format: OutputFormat,
    console: Console,
    title: str | None = None,
) -> None:
    """Write `data` to the console in the requested format."""
    if output_format == OutputFormat.JSON:
        # Plain write: rich markup/highlighting would corrupt the JSON
        console.out(render_json(data), highlight=False)
    elif output_format == OutputFormat.CSV:
        console.out(render_csv(data), end="", highlight=False)
    else:
        console.print(render_table(data, title=title))
