# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Shared CLI utilities.

This module provides common helper functions used across CLI commands
for consistent output formatting and backend construction.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable, Sequence, Tuple, TypeVar

import click
from botocore.exceptions import BotoCoreError

from qbraket.errors import QBraketError


if TYPE_CHECKING:
    from qbraket.backend import BraketBackend
    from qbraket.types import MeasurementResult, Outcome

T = TypeVar("T")

Column = Tuple[str, Callable[[Any], Any]]


def _jsonable(obj: Any) -> Any:
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, (list, tuple)):
        return [_jsonable(item) for item in obj]
    return obj


def print_json(obj: Any) -> None:
    """
    Print a record, a list of records, or plain data as JSON.

    Records are serialized through their ``to_dict``; anything else
    that JSON cannot encode is printed as a string.
    """
    click.echo(json.dumps(_jsonable(obj), indent=2, default=str))


def print_table(records: Sequence[Any], columns: Sequence[Column], title: str = "") -> None:
    """
    Print records as an aligned text table.

    Parameters
    ----------
    records : sequence
        Devices, breakdown items or any other row objects.
    columns : sequence of (header, getter)
        One column per pair; ``getter(record)`` gives the cell value.
    title : str, optional
        Underlined heading printed above the table.
    """
    if title:
        click.echo(f"\n{title}\n{'=' * len(title)}")
    if not records:
        click.echo("(no entries)")
        return

    headers = [header for header, _ in columns]
    cells = [[str(getter(record)) for _, getter in columns] for record in records]
    widths = [max(len(row[i]) for row in [headers, *cells]) for i in range(len(headers))]

    def line(values: Sequence[str]) -> str:
        return "  ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    click.echo(line(headers))
    click.echo(line(["-" * w for w in widths]))
    for row in cells:
        click.echo(line(row))


def unwrap_or_fail(outcome: Outcome[T]) -> T:
    """Return the outcome's value or abort the command with its error."""
    if not outcome.ok:
        raise click.ClickException(str(outcome.error))
    return outcome.value  # type: ignore[return-value]


def backend_from_ctx(ctx: click.Context, **overrides: Any) -> BraketBackend:
    """
    Get the backend for a command.

    A backend placed in ``ctx.obj["backend"]`` is used as is; otherwise
    one is built from the global options and the environment.

    Raises
    ------
    click.ClickException
        If the configuration is invalid.
    """
    from qbraket.backend import create_backend
    from qbraket.config import BackendConfig, infer_device_type

    obj = ctx.ensure_object(dict)
    if "backend" in obj:
        return obj["backend"]

    settings = {**obj.get("settings", {}), **overrides}
    if settings.get("device_arn"):
        settings.setdefault("device_type", infer_device_type(settings["device_arn"]))
    try:
        config = BackendConfig.from_env(**settings)
        backend = create_backend(config)
    except QBraketError as e:
        raise click.ClickException(str(e)) from e
    except BotoCoreError as e:
        raise click.ClickException(f"AWS session error: {e}") from e
    obj["backend"] = backend
    return backend


def format_counts_table(
    counts: dict[str, int], measurement: MeasurementResult, top_k: int = 10
) -> str:
    """Format measurement counts as ASCII table, most frequent first."""
    total = sum(counts.values())
    lines = [
        f"Total shots: {measurement.shot_count:,}",
        f"Unique outcomes: {len(counts)}",
        f"Source: {measurement.source.value}",
        "",
        f"{'Outcome':<20} {'Count':>10} {'Prob':>10}",
        "-" * 42,
    ]
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    for bitstring, count in ranked[:top_k]:
        prob = count / total if total else 0.0
        lines.append(f"{bitstring:<20} {count:>10,} {prob:>10.4f}")

    if len(ranked) > top_k:
        lines.append(f"... and {len(ranked) - top_k} more outcomes")

    return "\n".join(lines)
