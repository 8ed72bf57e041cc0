# media_saver/infra/http_client.py
"""
Shared HTTP client sessions for remote transfers.

Provides named, lazy-initialized aiohttp.ClientSession singletons to avoid
per-download session creation overhead and TCP connection churn.

A session is bound to the event loop it was created on; a session whose loop
has gone away is replaced transparently and the old one is closed.

Shutdown
~~~~~~~~
Call ``close_all_sessions()`` once during application shutdown.
"""
from __future__ import annotations

import asyncio

import aiohttp

from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)

_sessions: dict[str, aiohttp.ClientSession] = {}
# Closes in flight for sessions replaced after a loop change
_retiring: set[asyncio.Future] = set()


def _is_usable(session: aiohttp.ClientSession | None) -> bool:
    if session is None or session.closed:
        return False
    loop = getattr(session, "_loop", None)
    return loop is None or (loop is asyncio.get_running_loop() and not loop.is_closed())


async def _close_session(name: str, session: aiohttp.ClientSession) -> None:
    try:
        await session.close()
        logger.debug("Stale HTTP session '%s' closed", name)
    except Exception as e:
        logger.warning("Closing stale HTTP session '%s' failed: %s", name, e)


def _retire(name: str, session: aiohttp.ClientSession) -> None:
    """Close a session that belongs to another event loop."""
    old_loop = getattr(session, "_loop", None)
    current = asyncio.get_running_loop()

    if old_loop is not None and old_loop is not current and old_loop.is_running():
        future = asyncio.wrap_future(
            asyncio.run_coroutine_threadsafe(_close_session(name, session), old_loop)
        )
    else:
        future = current.create_task(_close_session(name, session))

    _retiring.add(future)
    future.add_done_callback(_retiring.discard)


def _get_or_create(
    name: str,
    timeout: aiohttp.ClientTimeout,
    limit: int = 10,
) -> aiohttp.ClientSession:
    """Return an existing session or create a new one."""
    session = _sessions.get(name)
    if not _is_usable(session):
        if session is not None and not session.closed:
            _retire(name, session)
        session = aiohttp.ClientSession(
            timeout=timeout,
            connector=aiohttp.TCPConnector(
                keepalive_timeout=30,
                limit=limit,
            ),
        )
        _sessions[name] = session
        logger.debug("HTTP session '%s' created (limit=%d)", name, limit)
    return session


def get_transfer_session(
    total: float = 60.0,
    connect: float = 15.0,
) -> aiohttp.ClientSession:
    """Session for remote file transfers."""
    return _get_or_create(
        "transfer",
        aiohttp.ClientTimeout(total=total, connect=connect),
        limit=10,
    )


async def close_all_sessions() -> None:
    """Gracefully close every managed session.  Call during app shutdown."""
    for name in list(_sessions):
        session = _sessions.pop(name, None)
        if session is not None and not session.closed:
            await session.close()
            logger.debug("HTTP session '%s' closed", name)

    current = asyncio.get_running_loop()
    pending = [f for f in _retiring if f.get_loop() is current]
    if pending:
        await asyncio.gather(*pending)
