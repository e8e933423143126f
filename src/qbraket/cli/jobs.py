# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Job and cost CLI commands.

``estimate`` prices circuits described by their size; ``run`` submits
an OpenQASM file and can poll until the task finishes.
"""

from __future__ import annotations

import time
from operator import itemgetter
from pathlib import Path

import click

from qbraket.cli._utils import (
    backend_from_ctx,
    format_counts_table,
    print_json,
    print_table,
    unwrap_or_fail,
)
from qbraket.orchestrator import PendingResult


def register(cli: click.Group) -> None:
    """Register job commands with CLI."""
    cli.add_command(estimate_command)
    cli.add_command(run_command)


@click.command("estimate")
@click.option("--device", "device_arn", help="Device ARN. Defaults to the configured device.")
@click.option("--shots", type=click.IntRange(min=1), help="Shots per circuit.")
@click.option("--circuits", "circuit_count", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--gates", type=click.IntRange(min=0), help="Gates per circuit.")
@click.option("--qubits", type=click.IntRange(min=1), help="Qubits per circuit.")
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def estimate_command(
    ctx: click.Context,
    device_arn: str | None,
    shots: int | None,
    circuit_count: int,
    gates: int | None,
    qubits: int | None,
    fmt: str,
) -> None:
    """
    Estimate the cost of running circuits.

    \b
    Examples:
        qbraket estimate --device arn:aws:braket:us-east-1::device/qpu/ionq/Forte-1 --shots 1000
        qbraket estimate --circuits 3 --gates 40 --qubits 10
    """
    backend = backend_from_ctx(ctx)
    summary = {}
    if gates is not None:
        summary["gate_count"] = gates
    if qubits is not None:
        summary["num_qubits"] = qubits
    circuits = [dict(summary) for _ in range(circuit_count)]

    options = {"shots": shots} if shots is not None else None
    estimate = unwrap_or_fail(backend.estimate_cost(circuits, options, device_arn=device_arn))

    if fmt == "json":
        print_json(estimate)
        return

    print_table(
        list(estimate.breakdown.to_dict().items()),
        (("Item", itemgetter(0)), ("Value", itemgetter(1))),
        title=f"Cost estimate for {estimate.device_arn}",
    )
    click.echo("")
    click.echo(f"Pricing model:  {estimate.pricing_model.value}")
    click.echo(f"Pricing source: {estimate.pricing_source.value}")
    click.echo(f"Total cost:     {estimate.total_cost:.2f} {estimate.currency}")


@click.command("run")
@click.argument("qasm_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--device", "device_arn", help="Device ARN. Defaults to the configured device.")
@click.option("--shots", type=click.IntRange(min=1), help="Shot count.")
@click.option("--wait", is_flag=True, help="Poll until the task finishes and print counts.")
@click.option("--poll-interval", type=click.FloatRange(min=0.0), default=5.0, show_default=True)
@click.option("--timeout", type=click.FloatRange(min=0.0), default=600.0, show_default=True)
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def run_command(
    ctx: click.Context,
    qasm_file: Path,
    device_arn: str | None,
    shots: int | None,
    wait: bool,
    poll_interval: float,
    timeout: float,
    fmt: str,
) -> None:
    """
    Submit an OpenQASM program.

    \b
    Examples:
        qbraket run bell.qasm --shots 100
        qbraket run bell.qasm --device arn:aws:braket:::device/quantum-simulator/amazon/dm1 --wait
    """
    backend = backend_from_ctx(ctx)
    source = qasm_file.read_text(encoding="utf-8")

    if device_arn:
        unwrap_or_fail(backend.select_device(device_arn))

    options = {"shots": shots} if shots is not None else None
    job_id = unwrap_or_fail(backend.submit_circuit(source, options))
    click.echo(f"Submitted job {job_id}", err=fmt == "json")

    if not wait:
        if fmt == "json":
            print_json({"job_id": job_id})
        return

    deadline = time.monotonic() + timeout
    while True:
        state = unwrap_or_fail(backend.job_status(job_id))
        if state.is_terminal:
            break
        if time.monotonic() >= deadline:
            raise click.ClickException(
                f"Timed out after {timeout:.0f}s waiting for job {job_id} ({state.value})"
            )
        time.sleep(poll_interval)

    result = unwrap_or_fail(backend.job_result(job_id))
    if isinstance(result, PendingResult):
        raise click.ClickException(f"Job {job_id} finished without results: {result.message}")

    if fmt == "json":
        print_json(result)
        return
    click.echo(format_counts_table(result.counts(), result.measurement))
