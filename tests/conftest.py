"""
Pytest configuration for neo4j-httptx tests

Unit and contract tests run against FakeTransport (tests/fakes.py), a
scripted transport that records every request and replays queued responses.
Integration tests (tests/integration) talk to a real Neo4j server.
"""

import pytest

from fakes import ROOT_URI, FakeTransport
from neo4j_httptx.discovery import EndpointCache
from neo4j_httptx.session import Session


@pytest.fixture
def transport():
    """Fresh scripted transport"""
    return FakeTransport()


@pytest.fixture
def endpoint_cache():
    """Isolated endpoint cache per test"""
    return EndpointCache()


@pytest.fixture
def session(transport, endpoint_cache):
    """
    Session with its discovery response already queued.

    Discovery happens on first use, so the queued root document is consumed
    by the first request the test makes.
    """
    transport.queue_discovery()
    return Session(ROOT_URI, transport, endpoint_cache=endpoint_cache)


@pytest.fixture
def open_transaction(session, transport):
    """Transaction opened with server id 7"""
    transport.queue_open(7)
    return session.begin_transaction()
