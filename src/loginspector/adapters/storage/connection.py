"""Connection lifecycle of the backing store.

The store is an SQLite database reached through aiosqlite. One database
file per namespace lives under the configured data directory, or the
database is kept in process when data_dir is ":memory:". A single
long-lived connection is shared by every operation; aiosqlite runs its
statements on one worker thread, so callers need no extra locking.
"""

import asyncio
import hashlib
import hmac
import logging
import os
import sqlite3
from pathlib import Path
from typing import Any

import aiosqlite

from loginspector.config import MEMORY_DATA_DIR, StoreSettings
from loginspector.core.exceptions import ClosedError, StoreConnectionError

logger = logging.getLogger(__name__)

CREDENTIALS_TABLE = "loginspector_credentials"

_CREDENTIALS_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {CREDENTIALS_TABLE} (
    username TEXT PRIMARY KEY,
    salt BLOB NOT NULL,
    password_hash BLOB NOT NULL
)
"""

_SELECT_CREDENTIALS = f"""
SELECT salt, password_hash FROM {CREDENTIALS_TABLE} WHERE username = ?
"""

_COUNT_CREDENTIALS = f"""
SELECT COUNT(*) FROM {CREDENTIALS_TABLE}
"""

_INSERT_CREDENTIALS = f"""
INSERT INTO {CREDENTIALS_TABLE} (username, salt, password_hash) VALUES (?, ?, ?)
"""

_PBKDF2_ITERATIONS = 100_000


def _hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt, _PBKDF2_ITERATIONS
    )


def _seconds(milliseconds: int) -> float | None:
    """Convert a millisecond timeout to seconds; 0 means unbounded."""
    return milliseconds / 1000 if milliseconds > 0 else None


class ConnectionManager:
    """Owns the single authenticated connection to the backing store.

    The connection is opened once by open() and shared through handle().
    close() is idempotent; once closed, handle() and open() raise
    ClosedError.

    Timing settings are handed to the transport: connect_timeout is the
    SQLite lock timeout and bounds open(), heartbeat_socket_timeout is the
    statement busy timeout and heartbeat_connect_timeout bounds ping().
    """

    def __init__(self, settings: StoreSettings) -> None:
        self._settings = settings
        self._conn: aiosqlite.Connection | None = None
        self._closed = False
        self._open_lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the open lock (lazy to avoid event loop issues)."""
        if self._open_lock is None:
            self._open_lock = asyncio.Lock()
        return self._open_lock

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def database_path(self) -> str:
        """Location of the database backing the configured namespace."""
        if self._settings.data_dir == MEMORY_DATA_DIR:
            return MEMORY_DATA_DIR
        return str(Path(self._settings.data_dir) / f"{self._settings.namespace}.db")

    @property
    def is_open(self) -> bool:
        return self._conn is not None and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    def transport_options(self) -> dict[str, Any]:
        """Timing options passed to the transport, as configured."""
        return {
            "connect_timeout": self._settings.connect_timeout,
            "heartbeat_connect_retry_frequency": (
                self._settings.heartbeat_connect_retry_frequency
            ),
            "heartbeat_connect_timeout": self._settings.heartbeat_connect_timeout,
            "heartbeat_socket_timeout": self._settings.heartbeat_socket_timeout,
        }

    async def open(self) -> aiosqlite.Connection:
        """Open and authenticate the shared connection.

        Calling open() on an already open manager returns the same handle.

        Returns:
            The shared aiosqlite connection.

        Raises:
            ClosedError: If the manager has been closed.
            StoreConnectionError: If the store is unreachable or rejects
                the configured credentials.
        """
        if self._closed:
            raise ClosedError("connection manager is closed")
        if self._conn is not None:
            return self._conn
        async with self._get_lock():
            if self._conn is not None:
                return self._conn
            if self._closed:
                raise ClosedError("connection manager is closed")
            self._conn = await self._connect()
            logger.info(
                "Opened log store %s as %s",
                self._settings.address,
                self._settings.username,
            )
            logger.debug("Transport options: %s", self.transport_options())
            return self._conn

    async def _connect(self) -> aiosqlite.Connection:
        path = self.database_path
        timeout = _seconds(self._settings.connect_timeout)
        if path != MEMORY_DATA_DIR and not os.path.isdir(self._settings.data_dir):
            raise StoreConnectionError(
                f"log store {self._settings.address} is unreachable: "
                f"data directory {self._settings.data_dir!r} does not exist"
            )
        try:
            conn = await asyncio.wait_for(
                aiosqlite.connect(path, timeout=timeout or 0), timeout=timeout
            )
        except (sqlite3.Error, OSError, asyncio.TimeoutError) as exc:
            raise StoreConnectionError(
                f"log store {self._settings.address} is unreachable: {exc}"
            ) from exc
        try:
            await conn.execute(
                f"PRAGMA busy_timeout = {self._settings.heartbeat_socket_timeout}"
            )
            if path != MEMORY_DATA_DIR:
                await conn.execute("PRAGMA journal_mode=WAL")
            await self._authenticate(conn)
        except StoreConnectionError:
            await conn.close()
            raise
        except sqlite3.Error as exc:
            await conn.close()
            raise StoreConnectionError(
                f"log store {self._settings.address} is unreachable: {exc}"
            ) from exc
        return conn

    async def _authenticate(self, conn: aiosqlite.Connection) -> None:
        """Check the configured credentials against the store.

        A store without any user adopts the configured credentials.
        """
        username = self._settings.username
        password = self._settings.password
        await conn.execute(_CREDENTIALS_SCHEMA)
        async with conn.execute(_SELECT_CREDENTIALS, (username,)) as cursor:
            row = await cursor.fetchone()
        if row is not None:
            salt, expected = row
            if not hmac.compare_digest(_hash_password(password, salt), expected):
                raise StoreConnectionError(
                    f"authentication failed for user {username!r}"
                )
            return
        async with conn.execute(_COUNT_CREDENTIALS) as cursor:
            count_row = await cursor.fetchone()
        if count_row and count_row[0] > 0:
            raise StoreConnectionError(f"authentication failed for user {username!r}")
        salt = os.urandom(16)
        await conn.execute(
            _INSERT_CREDENTIALS, (username, salt, _hash_password(password, salt))
        )
        await conn.commit()
        logger.info("Provisioned credentials for user %r", username)

    def handle(self) -> aiosqlite.Connection:
        """Return the shared connection.

        Raises:
            ClosedError: If the manager has been closed.
            StoreConnectionError: If open() has not completed yet.
        """
        if self._closed:
            raise ClosedError("connection manager is closed")
        if self._conn is None:
            raise StoreConnectionError("connection manager is not open")
        return self._conn

    async def ping(self) -> None:
        """Run one heartbeat round-trip against the store.

        Raises:
            ClosedError: If the manager has been closed.
            StoreConnectionError: If the store does not answer in time.
        """
        conn = self.handle()

        async def _round_trip() -> None:
            async with conn.execute("SELECT 1") as cursor:
                await cursor.fetchone()

        timeout = _seconds(self._settings.heartbeat_connect_timeout)
        try:
            await asyncio.wait_for(_round_trip(), timeout=timeout)
        except (sqlite3.Error, ValueError, asyncio.TimeoutError) as exc:
            raise StoreConnectionError(
                f"heartbeat to {self._settings.address} failed: {exc}"
            ) from exc

    async def close(self) -> None:
        """Close the shared connection. A second call is a no-op."""
        if self._closed:
            return
        self._closed = True
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()
        logger.info("Closed log store %s", self._settings.address)
