# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Device pricing and cost estimation.

Pricing models
--------------
- QPU devices: flat per-task fee plus a device-specific per-shot price.
- Simulators: device-specific per-minute price, applied to an execution
  time estimated from circuit size.

Resolution order
----------------
A device price is resolved by the first source that yields one:

1. the backend's pricing cache, while the entry is younger than the TTL;
2. ``service.deviceCost`` in the device capabilities (the selected
   device, or a fresh ``GetDevice`` lookup);
3. the AWS Price List catalog;
4. built-in fallback constants.

The resolved price is cached together with its source.

Examples
--------
>>> estimate = backend.estimate_cost([bell], {"shots": 1000})
>>> estimate.unwrap().total_cost
80.3
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import reduce
from typing import Any, Sequence

from qbraket.circuits import gate_count, qubit_count
from qbraket.clients import (
    BRAKET_SERVICE_CODE,
    ComputeServiceClient,
    PriceCatalogClient,
    invoke,
)
from qbraket.devices import device_cost, parse_device, parse_device_arn
from qbraket.errors import FormatError, ValidationError
from qbraket.state import StateStore
from qbraket.types import (
    CostHint,
    DeviceKind,
    Outcome,
    PricingCacheEntry,
    PricingSource,
    PricingUnit,
    SubmitOptions,
)
from qbraket.utils import get_nested, is_int, load_json_document, to_float


logger = logging.getLogger(__name__)

# Uniform per-task fee for Braket QPU tasks (USD).
PER_TASK_FEE = 0.30

FALLBACK_PRICE_PER_SHOT = 0.01
FALLBACK_PRICE_PER_MINUTE = 0.075

CURRENCY = "USD"

# Simulator execution time heuristic.
BASE_OVERHEAD_SECONDS = 1.0
SECONDS_PER_GATE_PER_SHOT = 2e-6
MAX_QUBIT_SCALING = 25
DEFAULT_GATE_COUNT = 10
DEFAULT_QUBIT_COUNT = 2


# =============================================================================
# Price catalog parsing
# =============================================================================


@dataclass(frozen=True)
class CatalogPricing:
    """Figures extracted from the AWS Price List."""

    price_per_task: float = 0.0
    price_per_shot: float = 0.0
    currency: str = CURRENCY


def _first_value(mapping: Any) -> Any:
    if isinstance(mapping, dict) and mapping:
        return next(iter(mapping.values()))
    return None


def _fold_product(pricing: CatalogPricing, product: dict[str, Any]) -> CatalogPricing:
    usage_type = str(get_nested(product, ("product", "attributes", "usagetype")) or "")
    term = _first_value(get_nested(product, ("terms", "OnDemand")))
    dimension = _first_value(get_nested(term, ("priceDimensions",)))
    price = to_float(get_nested(dimension, ("pricePerUnit", "USD")))
    if price is None:
        return pricing
    unit = get_nested(dimension, ("unit",))
    if unit == "Request" and "Task" in usage_type:
        return CatalogPricing(price, pricing.price_per_shot, pricing.currency)
    if unit == "Shot" and "Shot" in usage_type:
        return CatalogPricing(pricing.price_per_task, price, pricing.currency)
    return pricing


def parse_catalog_pricing(products: Sequence[Any]) -> CatalogPricing:
    """
    Extract per-task and per-shot prices from Price List records.

    Parameters
    ----------
    products : sequence
        Records as returned by ``GetProducts`` (JSON strings or dicts).

    Returns
    -------
    CatalogPricing
        Figures not found in any record stay at 0.0. When several
        records match, the last one wins.

    Raises
    ------
    FormatError
        If a record is not valid JSON.
    """
    try:
        decoded = [load_json_document(p) for p in products]
    except ValueError as e:
        raise FormatError("Price list record is not valid JSON", cause=e) from e
    return reduce(
        _fold_product,
        (p for p in decoded if isinstance(p, dict)),
        CatalogPricing(),
    )


# =============================================================================
# Estimate types
# =============================================================================


@dataclass(frozen=True)
class CostBreakdown:
    """Itemized cost figures; fields not used by a pricing model are None."""

    total_tasks: int
    total_shots: int
    per_task_fee: float | None = None
    price_per_shot: float | None = None
    task_cost: float | None = None
    shot_cost: float | None = None
    price_per_minute: float | None = None
    estimated_minutes: float | None = None
    minute_cost: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            k: v
            for k, v in self.__dict__.items()
            if v is not None
        }


@dataclass(frozen=True)
class CostEstimate:
    """
    Estimated cost of running circuits on a device.

    Parameters
    ----------
    total_cost : float
        Estimated total in ``currency``.
    currency : str
        Always "USD".
    pricing_model : PricingUnit
        Per-shot (QPU) or per-minute (simulator).
    pricing_source : PricingSource
        Source of the device price; ``CACHE`` when served from cache.
    device_arn : str
        Device the estimate is for.
    breakdown : CostBreakdown
        Itemized figures.
    resolved_source : PricingSource
        Source the cached price was originally resolved from.
    """

    total_cost: float
    currency: str
    pricing_model: PricingUnit
    pricing_source: PricingSource
    device_arn: str
    breakdown: CostBreakdown
    resolved_source: PricingSource

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cost": self.total_cost,
            "currency": self.currency,
            "pricing_model": self.pricing_model.value,
            "pricing_source": self.pricing_source.value,
            "resolved_source": self.resolved_source.value,
            "device_arn": self.device_arn,
            "cost_breakdown": self.breakdown.to_dict(),
        }


# =============================================================================
# Cost models
# =============================================================================


def estimate_simulator_minutes(circuit: Any, shots: int) -> float:
    """
    Estimate billed simulator minutes for one circuit.

    Execution time grows linearly in gates times shots and exponentially
    in qubit count (capped at 25 qubits). Braket bills at least one
    minute per task.

    Parameters
    ----------
    circuit : Any
        Circuit or summary mapping. Missing figures default to 10 gates
        and 2 qubits.
    shots : int
        Shots per execution.

    Returns
    -------
    float
        Estimated minutes, at least 1.0.

    Examples
    --------
    >>> estimate_simulator_minutes({"num_qubits": 2, "gate_count": 2}, 1000)
    1.0
    """
    gates = gate_count(circuit)
    qubits = qubit_count(circuit)
    gates = DEFAULT_GATE_COUNT if gates is None else gates
    qubits = DEFAULT_QUBIT_COUNT if qubits is None else qubits
    qubit_factor = 2.0 ** min(qubits, MAX_QUBIT_SCALING)
    seconds = BASE_OVERHEAD_SECONDS + gates * shots * SECONDS_PER_GATE_PER_SHOT * qubit_factor
    return max(1.0, seconds / 60.0)


def per_shot_cost(price_per_shot: float, circuit_count: int, shots: int) -> CostBreakdown:
    total_shots = circuit_count * shots
    return CostBreakdown(
        total_tasks=circuit_count,
        total_shots=total_shots,
        per_task_fee=PER_TASK_FEE,
        price_per_shot=price_per_shot,
        task_cost=circuit_count * PER_TASK_FEE,
        shot_cost=total_shots * price_per_shot,
    )


def per_minute_cost(
    price_per_minute: float, circuits: Sequence[Any], shots: int
) -> CostBreakdown:
    minutes = sum(estimate_simulator_minutes(c, shots) for c in circuits)
    return CostBreakdown(
        total_tasks=len(circuits),
        total_shots=len(circuits) * shots,
        price_per_minute=price_per_minute,
        estimated_minutes=minutes,
        minute_cost=minutes * price_per_minute,
    )


# =============================================================================
# Resolver
# =============================================================================


class PricingResolver:
    """
    Resolves device prices and computes cost estimates.

    Parameters
    ----------
    state : StateStore
        Backend state holding the pricing cache and selected device.
    compute : ComputeServiceClient
        Used for fresh ``GetDevice`` lookups.
    catalog : PriceCatalogClient, optional
        Price List client. Step 3 is skipped when None.
    pricing_region : str, optional
        Region whose price list is queried.
    default_shots : int, optional
        Shot count used when options do not specify one.
    logger : logging.Logger, optional
        Logger for resolution events.
    """

    def __init__(
        self,
        state: StateStore,
        compute: ComputeServiceClient,
        catalog: PriceCatalogClient | None = None,
        *,
        pricing_region: str = "us-east-1",
        default_shots: int = 1000,
        logger: logging.Logger | None = None,
    ) -> None:
        self._state = state
        self._compute = compute
        self._catalog = catalog
        self._pricing_region = pricing_region
        self._default_shots = default_shots
        self._log = logger or logging.getLogger(__name__)

    def device_pricing(self, device_arn: str) -> tuple[PricingCacheEntry, bool]:
        """
        Resolve the price of a device.

        Returns
        -------
        tuple
            The price entry and whether it was served from cache.
        """
        cached = self._state.get_price(device_arn)
        if cached is not None:
            self._log.debug("Pricing cache hit for %s", device_arn)
            return cached, True

        hint = self._from_device(device_arn)
        if hint is not None:
            source = PricingSource.DEVICE_CAPABILITY
        else:
            hint = self._from_catalog(device_arn)
            source = PricingSource.PRICE_CATALOG
        if hint is None:
            hint = _fallback(device_arn)
            source = PricingSource.FALLBACK

        entry = PricingCacheEntry(
            device_arn=device_arn,
            price=hint.price,
            unit=hint.unit,
            source=source,
            cached_at=self._state.now(),
        )
        self._state.cache_price(entry)
        self._log.debug(
            "Resolved %s pricing for %s: %s %s",
            source.value,
            device_arn,
            hint.price,
            hint.unit.value,
        )
        return entry, False

    def estimate_cost(
        self,
        circuits: Any,
        options: SubmitOptions | dict[str, Any] | None = None,
        device_arn: str | None = None,
    ) -> Outcome[CostEstimate]:
        """
        Estimate the cost of running circuits.

        Parameters
        ----------
        circuits : Any or list
            One circuit or a list of circuits.
        options : SubmitOptions or dict, optional
            ``shots`` per circuit; the backend default when absent.
        device_arn : str, optional
            Device to price. Defaults to the selected device. The
            selected device is never changed.

        Returns
        -------
        Outcome
            The estimate, or a :class:`ValidationError` for an empty
            circuit list or missing device.
        """
        if not isinstance(circuits, (list, tuple)):
            circuits = [circuits]
        if not circuits:
            return Outcome.failure(
                ValidationError("No circuits to estimate", operation="estimate_cost")
            )
        opts = SubmitOptions.coerce(options)
        shots = opts.shots if opts.shots is not None else self._default_shots
        if not is_int(shots) or shots <= 0:
            return Outcome.failure(
                ValidationError(
                    f"shots must be a positive integer, got {shots!r}",
                    operation="estimate_cost",
                )
            )

        if device_arn is None:
            current = self._state.get_current_device()
            device_arn = current.arn if current is not None else None
        if not device_arn:
            return Outcome.failure(
                ValidationError("No device selected", operation="estimate_cost")
            )

        entry, from_cache = self.device_pricing(device_arn)
        if entry.unit is PricingUnit.PER_MINUTE:
            breakdown = per_minute_cost(entry.price, circuits, shots)
            total = breakdown.minute_cost
        else:
            breakdown = per_shot_cost(entry.price, len(circuits), shots)
            total = breakdown.task_cost + breakdown.shot_cost

        return Outcome.success(
            CostEstimate(
                total_cost=total,
                currency=CURRENCY,
                pricing_model=entry.unit,
                pricing_source=PricingSource.CACHE if from_cache else entry.source,
                device_arn=device_arn,
                breakdown=breakdown,
                resolved_source=entry.source,
            )
        )

    def _from_device(self, device_arn: str) -> CostHint | None:
        current = self._state.get_current_device()
        if current is not None and current.arn == device_arn:
            hint = device_cost(current)
            if hint is not None:
                return hint
        fetched = invoke(
            "GetDevice",
            self._compute.get_device,
            device_arn,
            context={"device_arn": device_arn},
        )
        if not fetched.ok:
            return None
        return parse_device(fetched.value).cost_hint

    def _from_catalog(self, device_arn: str) -> CostHint | None:
        if self._catalog is None:
            return None
        products = invoke(
            "GetProducts",
            self._catalog.get_products,
            BRAKET_SERVICE_CODE,
            self._pricing_region,
        )
        if not products.ok:
            return None
        try:
            pricing = parse_catalog_pricing(products.value)
        except FormatError as e:
            self._log.warning("Ignoring unparseable price list: %s", e)
            return None
        if _is_simulator(device_arn):
            if pricing.price_per_task > 0:
                return CostHint(pricing.price_per_task, PricingUnit.PER_MINUTE)
        elif pricing.price_per_shot > 0:
            return CostHint(pricing.price_per_shot, PricingUnit.PER_SHOT)
        self._log.debug("Price list has no figure for %s", device_arn)
        return None


def _is_simulator(device_arn: str) -> bool:
    parsed = parse_device_arn(device_arn)
    if parsed is not None:
        return parsed.kind is DeviceKind.SIMULATOR
    return "simulator" in device_arn.lower()


def _fallback(device_arn: str) -> CostHint:
    if _is_simulator(device_arn):
        return CostHint(FALLBACK_PRICE_PER_MINUTE, PricingUnit.PER_MINUTE)
    return CostHint(FALLBACK_PRICE_PER_SHOT, PricingUnit.PER_SHOT)
