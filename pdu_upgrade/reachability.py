"""
Reboot-Readiness Poller
=======================

After an APC management card receives a firmware image it reboots. We
know it is back when its SSH port accepts TCP connections again.

Older cards can take a very long time to come back, so by default the
poller waits forever and logs every attempt. Runs that must finish in a
maintenance window can cap the wait with max_attempts / max_wait.

Only "not reachable yet" is retried. A hostname that no longer resolves
is a real error and fails the device immediately.
"""

from __future__ import annotations

import logging
import socket
import time

from pdu_upgrade.exceptions import ConnectError, UpgradeError

logger = logging.getLogger(__name__)


def is_reachable(host: str, port: int, timeout: float) -> bool:
    """Single TCP connect attempt."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except socket.gaierror as e:
        raise ConnectError(f"Cannot resolve {host}: {e}", host=host) from e
    except OSError as e:
        logger.debug(f"{host}:{port} not reachable: {e}")
        return False


def await_reachable(
    host: str,
    port: int = 22,
    per_attempt_timeout: float = 5.0,
    interval: float = 10.0,
    max_attempts: int | None = None,
    max_wait: float | None = None,
) -> int:
    """
    Block until host:port accepts a TCP connection.

    Returns the number of attempts it took.
    """
    start = time.monotonic()
    attempt = 0

    while True:
        attempt += 1
        if is_reachable(host, port, per_attempt_timeout):
            elapsed = time.monotonic() - start
            logger.info(f"{host}:{port} reachable after {attempt} attempt(s), {elapsed:.0f}s")
            return attempt

        elapsed = time.monotonic() - start
        logger.info(f"Waiting for {host}:{port} to come back (attempt {attempt}, {elapsed:.0f}s elapsed)")

        if max_attempts is not None and attempt >= max_attempts:
            raise UpgradeError(f"{host} not reachable after {attempt} attempts", host=host)
        if max_wait is not None and elapsed >= max_wait:
            raise UpgradeError(f"{host} not reachable after {elapsed:.0f}s", host=host)

        time.sleep(interval)
