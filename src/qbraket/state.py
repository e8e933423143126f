# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Per-backend state store.

A :class:`StateStore` holds every piece of mutable state of one backend
instance: job records, batch records, the device list, the selected
device and the pricing cache. Each map is guarded by its own lock and
every mutation replaces a single key under that lock, so concurrent
submitters never overwrite each other's records. No method performs
network I/O.

State is in memory only and is discarded with the backend instance.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from qbraket.errors import ConflictError
from qbraket.types import (
    BatchRecord,
    DeviceDescriptor,
    JobRecord,
    PricingCacheEntry,
)


logger = logging.getLogger(__name__)


class StateStore:
    """
    Thread-safe container for backend state.

    Parameters
    ----------
    pricing_ttl_seconds : float, optional
        Lifetime of pricing cache entries. Default is 24 hours.
    clock : callable, optional
        Returns the current time in seconds. Default is :func:`time.time`.
    """

    def __init__(
        self,
        *,
        pricing_ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = pricing_ttl_seconds
        self._clock = clock

        self._jobs: dict[str, JobRecord] = {}
        self._jobs_lock = threading.RLock()

        self._batches: dict[str, BatchRecord] = {}
        self._batches_lock = threading.RLock()

        self._devices: tuple[DeviceDescriptor, ...] = ()
        self._current_device: DeviceDescriptor | None = None
        self._devices_lock = threading.RLock()

        self._prices: dict[str, PricingCacheEntry] = {}
        self._prices_lock = threading.RLock()

    def now(self) -> float:
        """Current time according to the store's clock."""
        return self._clock()

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def put_job(self, record: JobRecord) -> None:
        """
        Register a new job record.

        Raises
        ------
        ConflictError
            If a record with the same job id already exists.
        """
        with self._jobs_lock:
            if record.job_id in self._jobs:
                raise ConflictError(
                    "Job id already registered",
                    job_id=record.job_id,
                    operation="put_job",
                )
            self._jobs[record.job_id] = record

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._jobs_lock:
            return self._jobs.get(job_id)

    def update_job(
        self, job_id: str, mutator: Callable[[JobRecord], JobRecord]
    ) -> JobRecord | None:
        """
        Atomically replace a job record with ``mutator(record)``.

        Parameters
        ----------
        job_id : str
            Job to update.
        mutator : callable
            Receives the current record and returns its replacement.
            Runs while the jobs lock is held.

        Returns
        -------
        JobRecord or None
            The stored replacement, or None if the job is unknown.

        Raises
        ------
        ConflictError
            If the mutator changes the job id or the remote task ARN.
        """
        with self._jobs_lock:
            current = self._jobs.get(job_id)
            if current is None:
                return None
            updated = mutator(current)
            if updated.job_id != current.job_id or updated.task_arn != current.task_arn:
                raise ConflictError(
                    "Job id and task ARN are immutable",
                    job_id=job_id,
                    task_arn=current.task_arn,
                    operation="update_job",
                )
            self._jobs[job_id] = updated
            return updated

    def remove_job(self, job_id: str) -> JobRecord | None:
        with self._jobs_lock:
            return self._jobs.pop(job_id, None)

    def list_jobs(self) -> list[JobRecord]:
        with self._jobs_lock:
            return list(self._jobs.values())

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def put_batch(self, record: BatchRecord) -> None:
        """
        Register a new batch record.

        Raises
        ------
        ConflictError
            If a record with the same batch id already exists.
        """
        with self._batches_lock:
            if record.batch_id in self._batches:
                raise ConflictError(
                    "Batch id already registered",
                    batch_id=record.batch_id,
                    operation="put_batch",
                )
            self._batches[record.batch_id] = record

    def get_batch(self, batch_id: str) -> BatchRecord | None:
        with self._batches_lock:
            return self._batches.get(batch_id)

    def update_batch(
        self, batch_id: str, mutator: Callable[[BatchRecord], BatchRecord]
    ) -> BatchRecord | None:
        """
        Atomically replace a batch record with ``mutator(record)``.

        The job list of a batch is fixed at creation; a mutator that
        changes it raises :class:`ConflictError`.
        """
        with self._batches_lock:
            current = self._batches.get(batch_id)
            if current is None:
                return None
            updated = mutator(current)
            if updated.batch_id != current.batch_id or updated.job_ids != current.job_ids:
                raise ConflictError(
                    "Batch id and job list are immutable",
                    batch_id=batch_id,
                    operation="update_batch",
                )
            self._batches[batch_id] = updated
            return updated

    def list_batches(self) -> list[BatchRecord]:
        with self._batches_lock:
            return list(self._batches.values())

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    def set_devices(self, devices: list[DeviceDescriptor]) -> None:
        with self._devices_lock:
            self._devices = tuple(devices)

    def get_devices(self) -> list[DeviceDescriptor]:
        with self._devices_lock:
            return list(self._devices)

    def find_device(self, device_arn: str) -> DeviceDescriptor | None:
        """Look up a device in the cached device list."""
        with self._devices_lock:
            for device in self._devices:
                if device.arn == device_arn:
                    return device
            return None

    def set_current_device(self, device: DeviceDescriptor) -> None:
        with self._devices_lock:
            self._current_device = device
        logger.debug("Current device set to %s", device.arn)

    def get_current_device(self) -> DeviceDescriptor | None:
        with self._devices_lock:
            return self._current_device

    # -------------------------------------------------------------------------
    # Pricing cache
    # -------------------------------------------------------------------------

    def cache_price(self, entry: PricingCacheEntry) -> None:
        """Store a resolved price, replacing any previous entry for the device."""
        with self._prices_lock:
            self._prices[entry.device_arn] = entry

    def get_price(self, device_arn: str) -> PricingCacheEntry | None:
        """
        Return the cached price for a device if it is still valid.

        Expired entries are dropped and None is returned so the caller
        resolves the price again.
        """
        with self._prices_lock:
            entry = self._prices.get(device_arn)
            if entry is None:
                return None
            if entry.is_valid(self._clock(), self._ttl):
                return entry
            del self._prices[device_arn]
        logger.debug("Pricing cache entry for %s expired", device_arn)
        return None

    def clear_prices(self) -> None:
        with self._prices_lock:
            self._prices.clear()
