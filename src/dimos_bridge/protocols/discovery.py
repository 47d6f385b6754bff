"""Blocking, one-shot tool discovery.

Registration must finish before the host considers the bridge ready, so
:func:`discover` blocks its caller.  The handshake itself runs on a private
event loop in a worker thread; the calling thread (which may be the
thread of a running event loop) only waits on the worker's future.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from dimos_bridge.protocols.client import list_tools
from dimos_bridge.protocols.errors import BridgeError, DiscoveryError
from dimos_bridge.protocols.models import Endpoint, ToolDescriptor

logger = logging.getLogger(__name__)

DISCOVERY_TIMEOUT = 10.0

# Extra time the caller waits for the worker past its own timeout.
_JOIN_SLACK = 1.0


def _discover_in_worker(endpoint: Endpoint, timeout: float) -> list[ToolDescriptor]:
    return asyncio.run(list_tools(endpoint, timeout))


def discover(endpoint: Endpoint, timeout: float = DISCOVERY_TIMEOUT) -> list[ToolDescriptor]:
    """Fetch the tool catalog from *endpoint*, blocking until done.

    Raises:
        DiscoveryError: On any transport, protocol or remote error, or when
            the catalog did not arrive within *timeout* seconds.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dimos-discovery")
    future = executor.submit(_discover_in_worker, endpoint, timeout)
    try:
        tools = future.result(timeout=timeout + _JOIN_SLACK)
    except FutureTimeoutError as exc:
        msg = f"Discovery against {endpoint.address} did not finish within {timeout}s"
        raise DiscoveryError(msg) from exc
    except BridgeError as exc:
        raise DiscoveryError(f"Discovery against {endpoint.address} failed: {exc}") from exc
    except Exception as exc:
        logger.debug("Unexpected discovery failure at %s", endpoint.address, exc_info=True)
        raise DiscoveryError(
            f"Discovery against {endpoint.address} failed: {type(exc).__name__}: {exc}"
        ) from exc
    finally:
        executor.shutdown(wait=False)

    logger.info("Discovered %d tool(s) at %s", len(tools), endpoint.address)
    return tools
