"""
Embeddings HTTP Transport

Builds the httpx client that HTTPEmbeddings talks through. An embeddings
service is a single upstream that answers with large JSON bodies: the pool
is sized for one host, connecting fails fast, and reading gets the whole
request budget because batch latency grows with batch size.

Pattern: Factory pattern for creating configured HTTP clients
"""

from typing import Optional

import httpx

from bigtool.core.config import get_settings


CONNECT_TIMEOUT_CAP_SECONDS: float = 5.0
"""Upper bound on connect and pool-acquire time, whatever the read budget."""

POOL_SIZE: int = 10
"""Connections kept to the embeddings service."""

USER_AGENT: str = "bigtool-embeddings/0.1"


def embeddings_timeout(timeout_seconds: float) -> httpx.Timeout:
    """
    Split a request budget into httpx timeouts.

    Read and write get the full budget; connect and pool acquisition are
    capped so an unreachable service is reported quickly.
    """
    connect = min(timeout_seconds, CONNECT_TIMEOUT_CAP_SECONDS)
    return httpx.Timeout(timeout_seconds, connect=connect, pool=connect)


def create_embeddings_http_client(
    service_url: str,
    timeout_seconds: Optional[float] = None,
    retries: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Create the async client for an embeddings service.

    Args:
        service_url: Base URL of the service (e.g. "http://embeddings:8001")
        timeout_seconds: Request budget (default: settings.embeddings_timeout_seconds)
        retries: Connection retries (default: settings.embeddings_retries)
        transport: Transport override such as httpx.MockTransport; retries
            and pool limits only apply to the default transport

    Returns:
        httpx.AsyncClient bound to service_url

    Example:
        >>> client = create_embeddings_http_client("http://embeddings:8001")
        >>> async with client:
        ...     response = await client.get("/health")
    """
    settings = get_settings()
    budget = timeout_seconds if timeout_seconds is not None else settings.embeddings_timeout_seconds

    if transport is None:
        # retries here cover connection failures only, never HTTP status errors
        transport = httpx.AsyncHTTPTransport(
            retries=retries if retries is not None else settings.embeddings_retries,
            limits=httpx.Limits(max_connections=POOL_SIZE, max_keepalive_connections=POOL_SIZE),
        )

    return httpx.AsyncClient(
        base_url=service_url,
        timeout=embeddings_timeout(budget),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        transport=transport,
    )
