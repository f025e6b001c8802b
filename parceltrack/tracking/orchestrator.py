"""
Deadline orchestrator.
Runs a carrier's fallback chain under one wall-clock budget and always
answers with a TrackingResult.
"""

import asyncio
import random
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence, Union

from parceltrack.config import TrackerConfig, get_config
from parceltrack.logging_config import RequestLogger
from parceltrack.models import CarrierId, TrackingIdentifier, TrackingResult, now_kst, parse_tracking_request
from parceltrack.tracking.adapters import SourceAdapter, SyntheticAdapter
from parceltrack.tracking.chain import build_chain
from parceltrack.tracking.errors import (
    UNSUPPORTED_MESSAGE,
    FetchError,
    FetchTimeout,
    GlobalTimeout,
    SourceUnavailable,
    describe_failure,
)
from parceltrack.tracking.timeline import assemble


class ChainState(str, Enum):
    """State of a fallback run."""
    TRYING = "trying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class ChainAttempt:
    """Outcome of one source attempt."""

    adapter: str
    outcome: str  # "success" or a FetchErrorKind value
    elapsed: float
    error: Optional[str] = None


class FallbackRun:
    """
    State machine over the real sources of one chain.

    TRYING(i) --succeed--> SUCCEEDED(result)
    TRYING(i) --fail-----> TRYING(i+1) while sources and budget remain
                       \\-> EXHAUSTED(last_error) otherwise
    any non-success --expire--> EXHAUSTED(GlobalTimeout)
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        deadline: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.adapters = list(adapters)
        self.deadline = deadline
        self.clock = clock

        self.index = 0
        self.result: Optional[TrackingResult] = None
        self.last_error: Optional[BaseException] = None
        self.attempts: list[ChainAttempt] = []

        if not self.adapters:
            raise ValueError("FallbackRun needs at least one real source")
        self.state = ChainState.TRYING

    @property
    def done(self) -> bool:
        return self.state != ChainState.TRYING

    @property
    def current(self) -> SourceAdapter:
        """Adapter to try now."""
        self._require_trying()
        return self.adapters[self.index]

    def remaining(self) -> float:
        """Seconds left before the global deadline."""
        return max(0.0, self.deadline - self.clock())

    def _require_trying(self):
        if self.state != ChainState.TRYING:
            raise RuntimeError(f"Fallback run is {self.state.value}, not trying")

    def succeed(self, result: TrackingResult):
        self._require_trying()
        self.result = result
        self.state = ChainState.SUCCEEDED

    def fail(self, error: BaseException):
        self._require_trying()
        self.last_error = error

        if self.index + 1 < len(self.adapters) and self.remaining() > 0:
            self.index += 1
        else:
            self.state = ChainState.EXHAUSTED

    def expire(self):
        """Global deadline elapsed."""
        if self.state == ChainState.SUCCEEDED:
            return
        self.state = ChainState.EXHAUSTED
        self.last_error = GlobalTimeout(
            "Tracking deadline elapsed before any source answered",
            last_error=self.last_error,
        )


@dataclass
class LookupOutcome:
    """A tracking result together with how it was obtained."""

    result: TrackingResult
    state: ChainState
    attempts: list[ChainAttempt] = field(default_factory=list)


class DeadlineOrchestrator:
    """
    Coordinates tracking lookups for one carrier at a time.

    Features:
    - Sources tried strictly in chain order, one in flight at a time
    - Every attempt bounded by a slice of the remaining budget
    - Whole request raced against the global deadline
    - Synthetic data with an explanatory error instead of failures
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        chain_builder: Optional[Callable[[CarrierId], list[SourceAdapter]]] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or get_config()
        self.clock = clock or now_kst
        self._rng = rng
        self._chain_builder = chain_builder or self._default_chain

    def _default_chain(self, carrier: CarrierId) -> list[SourceAdapter]:
        return build_chain(carrier, self.config, rng=self._rng, clock=self.clock)

    def attempt_budget(self, remaining: float) -> float:
        """Seconds one attempt may take, always below the remaining budget."""
        return min(self.config.adapter_timeout, remaining * self.config.adapter_budget_fraction)

    async def track(self, carrier: Union[CarrierId, str], tracking_number: str) -> TrackingResult:
        """
        Get tracking information for a shipment.

        Args:
            carrier: Declared carrier
            tracking_number: The tracking number

        Returns:
            TrackingResult, degraded with an error when no real source answered

        Raises:
            RequestValidationError: Unsupported carrier or empty tracking number
        """
        identifier = parse_tracking_request({
            "carrier": carrier.value if isinstance(carrier, CarrierId) else carrier,
            "trackingNumber": tracking_number,
        })
        outcome = await self.lookup(identifier)
        return outcome.result

    async def lookup(self, identifier: TrackingIdentifier) -> LookupOutcome:
        """Run the fallback chain for a validated identifier."""
        carrier = identifier.carrier
        log = RequestLogger(uuid.uuid4().hex, carrier.value)

        chain = self._chain_builder(carrier)
        if not chain or not isinstance(chain[-1], SyntheticAdapter):
            raise TypeError(f"Fallback chain for {carrier.value} must end with a SyntheticAdapter")
        synthetic = chain[-1]

        real_sources = [adapter for adapter in chain if not adapter.synthetic]
        if not real_sources:
            log.info("No real-time source, returning synthetic data")
            return LookupOutcome(
                result=synthetic.generate(carrier, error=UNSUPPORTED_MESSAGE),
                state=ChainState.EXHAUSTED,
            )

        loop = asyncio.get_running_loop()
        deadline = self.config.global_deadline
        run = FallbackRun(real_sources, deadline=loop.time() + deadline, clock=loop.time)

        log.debug(f"Chain: {', '.join(a.name for a in real_sources)} (deadline {deadline:.1f}s)")

        try:
            await asyncio.wait_for(self._drive(run, identifier, log), timeout=deadline)
        except asyncio.TimeoutError:
            run.expire()
            log.warning(f"Global deadline of {deadline:.1f}s elapsed, abandoning in-flight source")

        if run.state == ChainState.SUCCEEDED and run.result is not None:
            log.info(f"Tracking {identifier.tracking_number}: {run.result.current_status.value} via {run.result.source}")
            return LookupOutcome(result=run.result, state=run.state, attempts=run.attempts)

        error_message = describe_failure(run.last_error)
        log.warning(f"All sources failed ({run.last_error}), returning synthetic data")

        return LookupOutcome(
            result=synthetic.generate(carrier, error=error_message),
            state=run.state,
            attempts=run.attempts,
        )

    async def _drive(self, run: FallbackRun, identifier: TrackingIdentifier, log: RequestLogger):
        """Try sources in order until one succeeds or the chain is exhausted."""
        loop = asyncio.get_running_loop()

        while not run.done:
            adapter = run.current
            budget = self.attempt_budget(run.remaining())
            started = loop.time()

            try:
                fetched = await asyncio.wait_for(
                    adapter.fetch(identifier.tracking_number, budget),
                    timeout=budget,
                )
                result = assemble(
                    identifier.carrier,
                    fetched.events,
                    sender_name=fetched.sender_name,
                    receiver_name=fetched.receiver_name,
                    estimated_delivery=fetched.estimated_delivery,
                    source=adapter.name,
                    now=self.clock,
                )

            except asyncio.TimeoutError:
                error: BaseException = FetchTimeout(
                    f"{adapter.name} did not answer within {budget:.1f}s", adapter.name
                )
            except FetchError as e:
                error = e
            except Exception as e:
                log.exception(f"Unexpected error from {adapter.name}")
                error = SourceUnavailable(f"{adapter.name} failed: {e}", adapter.name)

            else:
                run.attempts.append(ChainAttempt(adapter.name, "success", loop.time() - started))
                run.succeed(result)
                return

            kind = error.kind.value if isinstance(error, FetchError) else "unavailable"
            run.attempts.append(ChainAttempt(adapter.name, kind, loop.time() - started, str(error)))
            log.warning(f"{adapter.name} failed ({kind}): {error}")
            run.fail(error)
