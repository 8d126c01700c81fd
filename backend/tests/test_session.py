import asyncio

import httpx
import pytest
from pydantic import ValidationError

from backend.drugdir import clients
from backend.drugdir.models import DiscoverQuery, DrugRecord, FetchEmpty, FetchFailure, FetchSuccess, SearchQuery
from backend.drugdir.session import ClickCounter, DirectorySession


def _rec(rid, brand="ADVIL"):
    return DrugRecord(id=rid, brand_name=brand, generic_name="IBUPROFEN", manufacturer_name="Pfizer")


@pytest.fixture
def fake_fetch(monkeypatch):
    """Replace the network engine with a scripted one; returns the list of queries it saw."""
    seen = []
    outcomes = {}

    async def _fetch(session, query, **kwargs):
        seen.append(query)
        key = getattr(query, "term", None)
        return outcomes.get(key, FetchEmpty())

    monkeypatch.setattr("backend.drugdir.clients.fetch_drugs", _fetch)
    _fetch.seen = seen
    _fetch.outcomes = outcomes
    return _fetch


def test_initial_state_is_loading():
    s = DirectorySession(session=None)
    st = s.state
    assert st.loading is True
    assert st.records == ()
    assert st.error is None
    assert st.selected is None


def test_discover_success(fake_fetch):
    fake_fetch.outcomes[None] = FetchSuccess(records=(_rec("1"), _rec("2")))
    s = DirectorySession(session=None)
    st = asyncio.run(s.discover())
    assert [r.id for r in st.records] == ["1", "2"]
    assert st.loading is False
    assert st.error is None


def test_empty_sets_no_drugs_found(fake_fetch):
    s = DirectorySession(session=None)
    st = asyncio.run(s.search("Nothing"))
    assert st.records == ()
    assert st.error == "No drugs found"
    assert st.loading is False


def test_failure_surfaces_message_and_clears_records(fake_fetch):
    fake_fetch.outcomes["Advil"] = FetchSuccess(records=(_rec("1"),))
    fake_fetch.outcomes["Bad"] = FetchFailure(message=clients.FETCH_FAILED_MESSAGE, attempts=3)
    s = DirectorySession(session=None)
    asyncio.run(s.search("Advil"))
    st = asyncio.run(s.search("Bad"))
    assert st.records == ()
    assert st.error == clients.FETCH_FAILED_MESSAGE
    assert st.loading is False


def test_success_after_error_clears_error(fake_fetch):
    fake_fetch.outcomes["Advil"] = FetchSuccess(records=(_rec("1"),))
    s = DirectorySession(session=None)
    asyncio.run(s.search("Nothing"))
    st = asyncio.run(s.search("Advil"))
    assert st.error is None
    assert [r.id for r in st.records] == ["1"]


@pytest.mark.parametrize("term", ["", "   ", None])
def test_blank_search_discovers(fake_fetch, term):
    s = DirectorySession(session=None)
    asyncio.run(s.search(term))
    assert fake_fetch.seen == [DiscoverQuery()]


def test_search_uses_trimmed_term(fake_fetch):
    s = DirectorySession(session=None)
    asyncio.run(s.search("  Advil "))
    assert fake_fetch.seen == [SearchQuery(term="Advil")]


def _gated(monkeypatch):
    gates = {}

    async def _fetch(session, query, **kwargs):
        gate = gates.setdefault(query.term, asyncio.Event())
        await gate.wait()
        return FetchSuccess(records=(_rec(query.term, brand=query.term.upper()),))

    monkeypatch.setattr("backend.drugdir.clients.fetch_drugs", _fetch)
    return gates


@pytest.mark.parametrize("resolve_first", ["x", "y"])
def test_latest_call_wins_regardless_of_arrival(monkeypatch, resolve_first):
    gates = _gated(monkeypatch)
    s = DirectorySession(session=None)

    async def go():
        tx = asyncio.create_task(s.search("x"))
        ty = asyncio.create_task(s.search("y"))
        await asyncio.sleep(0)
        assert s.state.loading is True
        first, second = (("x", tx), ("y", ty)) if resolve_first == "x" else (("y", ty), ("x", tx))
        gates[first[0]].set()
        await first[1]
        gates[second[0]].set()
        await second[1]
        return s.state

    st = asyncio.run(go())
    assert [r.id for r in st.records] == ["y"]
    assert st.loading is False
    assert st.error is None


def test_stale_result_does_not_clear_loading(monkeypatch):
    gates = _gated(monkeypatch)
    s = DirectorySession(session=None)

    async def go():
        tx = asyncio.create_task(s.search("x"))
        ty = asyncio.create_task(s.search("y"))
        await asyncio.sleep(0)
        gates["x"].set()
        await tx
        mid = s.state
        gates["y"].set()
        await ty
        return mid

    mid = asyncio.run(go())
    assert mid.loading is True
    assert mid.records == ()


def test_select_and_dismiss(advil):
    s = DirectorySession(session=None)
    s.select(advil)
    assert s.state.selected == advil
    s.dismiss()
    assert s.state.selected is None


def test_select_is_idempotent_and_counts_every_call(advil):
    counter = ClickCounter()
    s = DirectorySession(session=None, on_select=counter.increment)
    s.select(advil)
    after_first = s.state
    s.select(advil)
    assert s.state == after_first
    assert counter.count == 2


def test_select_does_not_touch_network(fake_fetch, advil):
    s = DirectorySession(session=None)
    s.select(advil)
    assert fake_fetch.seen == []


def test_state_snapshot_is_read_only(advil):
    s = DirectorySession(session=None)
    st = s.state
    with pytest.raises(ValidationError):
        st.selected = advil
    assert s.state.selected is None


def test_real_engine_end_to_end(make_report):
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("down")
        return httpx.Response(200, json={"results": [make_report(report_id="55")]})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            s = DirectorySession(http, max_attempts=3, base_delay=0.0)
            return await s.search("Advil")

    st = asyncio.run(go())
    assert [r.id for r in st.records] == ["55"]
    assert len(attempts) == 3


def test_engine_error_still_ends_loading(monkeypatch):
    async def _broken(session, query, **kwargs):
        raise ValueError("max_attempts must be at least 1, got 0")

    monkeypatch.setattr("backend.drugdir.clients.fetch_drugs", _broken)
    s = DirectorySession(session=None)
    with pytest.raises(ValueError):
        asyncio.run(s.discover())
    assert s.state.loading is False


def test_stale_engine_error_leaves_latest_load_running(monkeypatch):
    gates = {}

    async def _fetch(session, query, **kwargs):
        await gates[query.term].wait()
        if query.term == "x":
            raise ValueError("boom")
        return FetchSuccess(records=(_rec("y"),))

    monkeypatch.setattr("backend.drugdir.clients.fetch_drugs", _fetch)
    s = DirectorySession(session=None)

    async def go():
        gates["x"], gates["y"] = asyncio.Event(), asyncio.Event()
        tx = asyncio.create_task(s.search("x"))
        ty = asyncio.create_task(s.search("y"))
        await asyncio.sleep(0)
        gates["x"].set()
        with pytest.raises(ValueError):
            await tx
        mid = s.state.loading
        gates["y"].set()
        await ty
        return mid

    assert asyncio.run(go()) is True
    assert [r.id for r in s.state.records] == ["y"]
    assert s.state.loading is False
