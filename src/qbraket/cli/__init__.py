# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Command-line interface.

Registered as the ``qbraket`` console script.

Examples
--------
::

    qbraket --bucket my-results devices
    qbraket --bucket my-results estimate --device ARN --shots 1000
    qbraket --bucket my-results run bell.qasm --shots 100 --wait
"""

from __future__ import annotations

import logging

import click

from qbraket.cli import devices, jobs


@click.group()
@click.option(
    "--bucket",
    envvar="QBRAKET_S3_BUCKET",
    help="S3 bucket for task results (env: QBRAKET_S3_BUCKET).",
)
@click.option("--region", envvar="QBRAKET_REGION", help="AWS region of the Braket service.")
@click.option("--profile", envvar="AWS_PROFILE", help="Named AWS profile.")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv).")
@click.pass_context
def cli(
    ctx: click.Context,
    bucket: str | None,
    region: str | None,
    profile: str | None,
    verbose: int,
) -> None:
    """Submit circuits to Amazon Braket and estimate their cost."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    obj = ctx.ensure_object(dict)
    obj.setdefault(
        "settings",
        {"s3_bucket": bucket, "region": region, "aws_profile": profile},
    )


devices.register(cli)
jobs.register(cli)


def main() -> None:
    """Run the ``qbraket`` CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
