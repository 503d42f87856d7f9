"""
Integration test configuration

Integration tests talk to a real Neo4j server over HTTP. Connection details
come from environment variables:

- NEO4J_HTTP_URI (default http://localhost:7474)
- NEO4J_USER (default neo4j)
- NEO4J_PASSWORD (default password)
- NEO4J_DATABASE (default neo4j)

Tests are skipped when the server cannot be reached.
"""

import os

import httpx
import pytest

from neo4j_httptx.config import ClientConfig
from neo4j_httptx.driver import Driver


@pytest.fixture(scope="session")
def neo4j_connection_params():
    return {
        "uri": os.getenv("NEO4J_HTTP_URI", "http://localhost:7474"),
        "username": os.getenv("NEO4J_USER", "neo4j"),
        "password": os.getenv("NEO4J_PASSWORD", "password"),
        "database": os.getenv("NEO4J_DATABASE", "neo4j"),
    }


@pytest.fixture(scope="session")
def neo4j_available(neo4j_connection_params):
    """Skip unless the server root answers."""
    try:
        httpx.get(neo4j_connection_params["uri"], timeout=2.0)
    except httpx.HTTPError as e:
        pytest.skip(f"Neo4j not reachable at {neo4j_connection_params['uri']}: {e}")
    return True


@pytest.fixture
def driver(neo4j_available, neo4j_connection_params):
    config = ClientConfig(
        database=neo4j_connection_params["database"],
        username=neo4j_connection_params["username"],
        password=neo4j_connection_params["password"],
        timeout=10.0,
    )
    with Driver(neo4j_connection_params["uri"], config=config) as driver:
        yield driver


@pytest.fixture
def session(driver):
    with driver.session() as session:
        yield session
