# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""Device CLI commands."""

from __future__ import annotations

import click

from qbraket.cli._utils import backend_from_ctx, print_json, print_table, unwrap_or_fail


DEVICE_COLUMNS = (
    ("Name", lambda d: d.name),
    ("Provider", lambda d: d.provider),
    ("Type", lambda d: d.kind.value),
    ("Status", lambda d: d.status.value),
    ("Qubits", lambda d: d.qubit_count if d.qubit_count is not None else "-"),
    ("ARN", lambda d: d.arn),
)


def register(cli: click.Group) -> None:
    """Register device commands with CLI."""
    cli.add_command(devices_command)


@click.command("devices")
@click.option(
    "--status",
    type=click.Choice(["online", "offline", "retired", "unknown"]),
    help="Only show devices with this status.",
)
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def devices_command(ctx: click.Context, status: str | None, fmt: str) -> None:
    """List Amazon Braket devices."""
    backend = backend_from_ctx(ctx)
    found = unwrap_or_fail(backend.devices())
    if status:
        found = [d for d in found if d.status.value == status]

    if fmt == "json":
        print_json(found)
        return

    print_table(
        sorted(found, key=lambda d: (d.provider, d.name)),
        DEVICE_COLUMNS,
        title="Devices",
    )
