import asyncio
import logging
import random
from typing import Any, Dict, List, Optional

import httpx

from . import config
from .errors import TerminalFetchError, TransientNetworkError
from .models import DrugRecord, FetchEmpty, FetchFailure, FetchOutcome, FetchSuccess, Query
from .normalize import normalize_all
from .query import build_parameters

logger = logging.getLogger("drug_directory.clients")

NO_RESULTS_MESSAGE = "No drugs found"
FETCH_FAILED_MESSAGE = (
    "Failed to fetch drug data. Please check your network connection and try again later."
)


async def _fetch(session: httpx.AsyncClient, url: str, params: Dict[str, str]) -> Dict[str, Any]:
    """
    One GET against the event endpoint, decoded to a JSON object.
    4xx bodies are decoded like any other (openFDA answers "no match" with a 404);
    transport errors, 5xx and undecodable bodies raise TransientNetworkError.
    """
    try:
        r = await session.get(url, params=params, timeout=config.HTTP_TIMEOUT)
    except httpx.HTTPError as e:
        raise TransientNetworkError(f"request failed: {e!r}", e) from e
    if 500 <= r.status_code < 600:
        raise TransientNetworkError(f"upstream returned {r.status_code}")
    try:
        data = r.json()
    except ValueError as e:
        raise TransientNetworkError("response body is not valid JSON", e) from e
    if not isinstance(data, dict):
        raise TransientNetworkError(f"unexpected JSON payload: {type(data).__name__}")
    return data


def _classify(data: Dict[str, Any], attempts: int) -> FetchOutcome:
    results = data.get("results")
    if not isinstance(results, list) or not results:
        return FetchEmpty(attempts=attempts)
    records = normalize_all(results)
    if not records:
        return FetchEmpty(attempts=attempts)
    return FetchSuccess(records=tuple(records), attempts=attempts)


def _delay(i: int, base_delay: float, max_delay: float) -> float:
    return min(base_delay * (2 ** i), max_delay)


async def fetch_drugs(
    session: httpx.AsyncClient,
    query: Query,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    rng: Optional[random.Random] = None,
    url: Optional[str] = None,
) -> FetchOutcome:
    """
    Fetch one page of reports for a query, retrying transient failures.

    Makes at most max_attempts requests. Parameters are rebuilt for every attempt,
    so a discover retry samples a new offset. Never raises for network trouble:
    the result is always FetchSuccess, FetchEmpty or FetchFailure.
    """
    attempts = config.FETCH_ATTEMPTS if max_attempts is None else max_attempts
    if attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {attempts}")
    base_delay = config.RETRY_BASE_DELAY if base_delay is None else base_delay
    max_delay = config.RETRY_MAX_DELAY if max_delay is None else max_delay
    url = url or config.OPENFDA_EVENT_URL

    for i in range(attempts):
        params = build_parameters(query, rng=rng)
        try:
            data = await _fetch(session, url, params)
        except TransientNetworkError as e:
            left = attempts - i - 1
            if left > 0:
                logger.warning(f"Retrying... ({left} attempts left): {e}")
                wait = _delay(i, base_delay, max_delay)
                if wait > 0:
                    await asyncio.sleep(wait)
                continue
            logger.error(f"Error fetching drugs after {attempts} attempts: {e}")
            break
        return _classify(data, attempts=i + 1)

    return FetchFailure(message=FETCH_FAILED_MESSAGE, attempts=attempts)


async def fetch_drugs_or_raise(session: httpx.AsyncClient, query: Query, **kwargs) -> List[DrugRecord]:
    """Same as fetch_drugs, but an empty page is [] and exhaustion raises TerminalFetchError."""
    outcome = await fetch_drugs(session, query, **kwargs)
    if isinstance(outcome, FetchFailure):
        raise TerminalFetchError(outcome.message, attempts=outcome.attempts)
    if isinstance(outcome, FetchEmpty):
        return []
    return list(outcome.records)
