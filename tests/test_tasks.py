"""Tests for the arq task functions."""

from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest

from schnitzarchiv.errors import SearchProviderError
from schnitzarchiv.models import QueryStatus
from schnitzarchiv.services.query_queue import SearchQueryQueue
from schnitzarchiv.tasks.processing import TASK_FUNCTIONS, process_pending_task, process_query_task


@pytest.fixture
def worker_env(async_session, search_client, fetcher, generator):
    """Point the tasks at the test session and the fake providers."""

    @asynccontextmanager
    async def session_maker():
        yield async_session

    with patch("schnitzarchiv.tasks.processing.async_session_maker", session_maker), \
         patch("schnitzarchiv.tasks.processing.get_search_client", return_value=search_client), \
         patch("schnitzarchiv.tasks.processing.get_page_fetcher", return_value=fetcher), \
         patch("schnitzarchiv.tasks.processing.get_metadata_generator", return_value=generator):
        yield


def test_task_functions_registered():
    assert process_query_task in TASK_FUNCTIONS
    assert process_pending_task in TASK_FUNCTIONS


@pytest.mark.asyncio
async def test_process_query_task_uses_worker_budget(worker_env, async_session, search_client, fetcher):
    query = await SearchQueryQueue(async_session).create("Kerbschnitt")
    query_id = query.id
    search_client.results = ["https://example.org/1"]

    result = await process_query_task({}, query_id)

    assert result["status"] == "processed"
    assert result["new_sources_added"] == 1
    assert search_client.calls == [("Kerbschnitt", 15)]
    assert fetcher.calls == [("https://example.org/1", 30.0)]


@pytest.mark.asyncio
async def test_process_pending_task_continues_after_failure(worker_env, async_session, search_client):
    queue = SearchQueryQueue(async_session)
    first = await queue.create("erste")
    second = await queue.create("zweite")
    first_id, second_id = first.id, second.id
    search_client.error = SearchProviderError("Serper API error: 503 Service Unavailable")

    result = await process_pending_task({}, limit=10)

    assert result["queries"] == 2
    assert result["failed"] == 2
    assert result["processed"] == 0
    for query_id in (first_id, second_id):
        query = await queue.require(query_id)
        assert query.status == QueryStatus.failed
