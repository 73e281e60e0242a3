"""Polling fetch for eventually-consistent upstream feeds.

The hotel pricing API answers with an empty result list while it is still
computing live rates. An empty list is retried, and so are transport errors,
non-2xx responses and undecodable bodies. Running out of attempts is not an
error: the caller gets a payload whose result list is empty.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 15
DEFAULT_DELAY_MS = 1500


@dataclass(frozen=True)
class AttemptOutcome:
    """What a single GET produced: a parsed payload or an error description."""

    payload: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None


@dataclass(frozen=True)
class PollState:
    url: str
    max_attempts: int
    result_key: str = "hotels"
    attempt: int = 0
    payload: Optional[Any] = None  # last payload that parsed, kept across failed attempts
    count: int = 0
    failures: int = 0
    error: Optional[str] = None
    ready: bool = False

    @property
    def exhausted(self) -> bool:
        return not self.ready and self.attempt >= self.max_attempts

    @property
    def finished(self) -> bool:
        return self.ready or self.exhausted


def count_results(payload: Any, result_key: str) -> int:
    """Length of payload[result_key]; 0 when absent or not a list."""
    if not isinstance(payload, dict):
        return 0
    items = payload.get(result_key)
    return len(items) if isinstance(items, list) else 0


def advance(state: PollState, outcome: AttemptOutcome) -> PollState:
    """Fold one attempt's outcome into the polling state."""
    attempt = state.attempt + 1
    if outcome.error is not None:
        return replace(
            state,
            attempt=attempt,
            count=0,
            failures=state.failures + 1,
            error=outcome.error,
        )
    count = count_results(outcome.payload, state.result_key)
    return replace(
        state,
        attempt=attempt,
        payload=outcome.payload,
        count=count,
        error=None,
        ready=count > 0,
    )


def empty_result(state: PollState) -> dict:
    """Payload returned when polling ends without results."""
    if isinstance(state.payload, dict):
        result = dict(state.payload)
    else:
        result = {"completed": True}
    result[state.result_key] = []
    return result


def log_attempt(state: PollState) -> None:
    if state.error is not None:
        logger.warning(
            "Attempt %d/%d failed for %s: %s",
            state.attempt, state.max_attempts, state.url, state.error,
        )
    else:
        logger.info(
            "Attempt %d/%d retrieved %d %s",
            state.attempt, state.max_attempts, state.count, state.result_key,
        )


async def _sleep_unless_cancelled(delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
    """Sleep for delay seconds. Returns True if cancel_event fired first."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        return True
    except asyncio.TimeoutError:
        return False


class PollingFetcher:
    """GETs a URL until payload[result_key] is non-empty or the attempt budget runs out."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay_ms: int = DEFAULT_DELAY_MS,
        result_key: str = "hotels",
        observer: Optional[Callable[[PollState], None]] = None,
    ):
        _check_budget(max_attempts, delay_ms)
        self.client = client
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms
        self.result_key = result_key
        self.observer = observer or log_attempt

    async def poll_until_ready(
        self,
        url: str,
        *,
        max_attempts: Optional[int] = None,
        delay_ms: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> dict:
        """Return the first payload with results, or an empty-result payload.

        Setting cancel_event aborts the in-flight request and skips the
        remaining delays and attempts.
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        delay = self.delay_ms if delay_ms is None else delay_ms
        _check_budget(attempts, delay)

        state = PollState(url=url, max_attempts=attempts, result_key=self.result_key)
        while not state.finished:
            if cancel_event is not None and cancel_event.is_set():
                break
            logger.debug("Attempt %d/%d - fetching %s", state.attempt + 1, attempts, url)
            outcome = await self._attempt(url, cancel_event)
            if outcome is None:
                break
            state = advance(state, outcome)
            self.observer(state)
            if state.ready:
                return state.payload
            if not state.exhausted and delay > 0:
                if await _sleep_unless_cancelled(delay / 1000, cancel_event):
                    break

        if not state.exhausted:
            logger.info("Polling cancelled for %s after %d attempt(s)", url, state.attempt)
        elif state.failures == state.attempt:
            # Every attempt failed outright; still an empty result, but worth flagging
            logger.error("All %d attempts failed for %s; returning empty result", attempts, url)
        else:
            logger.warning("All %d attempts completed without %s", attempts, self.result_key)
        return empty_result(state)

    async def _attempt(
        self, url: str, cancel_event: Optional[asyncio.Event]
    ) -> Optional[AttemptOutcome]:
        """Run one fetch. Returns None if cancel_event fired before it finished."""
        if cancel_event is None:
            return await self._fetch(url)

        fetch_task = asyncio.ensure_future(self._fetch(url))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({fetch_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [t for t in (fetch_task, cancel_task) if not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if fetch_task.done() and not fetch_task.cancelled():
            return fetch_task.result()
        return None

    async def _fetch(self, url: str) -> AttemptOutcome:
        try:
            resp = await self.client.get(url)
        except httpx.HTTPError as exc:
            return AttemptOutcome(error=f"{type(exc).__name__}: {exc}")

        if not resp.is_success:
            return AttemptOutcome(error=f"HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as exc:
            return AttemptOutcome(error=f"invalid JSON body: {exc}", status_code=resp.status_code)
        return AttemptOutcome(payload=payload, status_code=resp.status_code)


def _check_budget(max_attempts: int, delay_ms: int) -> None:
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be positive, got {max_attempts}")
    if delay_ms < 0:
        raise ValueError(f"delay_ms must be non-negative, got {delay_ms}")
