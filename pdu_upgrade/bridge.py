"""
Interactive Session Bridge
==========================

Turns a PDU's interactive SSH shell into a request/response channel.

HOW IT WORKS:
-------------
PDU management cards don't speak any structured protocol, only a human
CLI. Netmiko gives us the SSH channel; we open it with the
"terminal_server" device type so netmiko does no session preparation of
its own (it would guess at Cisco-style prompts and fail). On top of the
raw channel we layer a simple protocol:

  1. Write the command followed by a newline
  2. Read until the prompt regex shows up at the end of the stream
  3. Return everything in between, minus the echoed command and prompt

The devices never announce they are ready, so right after login we send
a bare newline and wait for the first prompt. That gives us a clean
baseline before any real command goes out. At that point we do not know
the vendor yet, so the baseline accepts any line ending in a usual
prompt character; the classifier then narrows the prompt to the
family's own pattern.

A prompt that never shows up within the timeout is fatal for the device.
Once the shell is out of sync, no later output can be trusted.

LEGACY CRYPTO:
--------------
Older management cards only offer obsolete key exchange, host key, and
cipher algorithms. Callers can pass an allow-list per connection and we
translate it into paramiko's "disabled_algorithms" deny-list. Host key
checking is off; the fleet is approved out of band.
"""

from __future__ import annotations

import logging
import re
import time

import paramiko
from netmiko import ConnectHandler
from netmiko.exceptions import (
    NetmikoAuthenticationException,
    NetmikoTimeoutException,
    ReadException,
    ReadTimeout,
)

from pdu_upgrade.exceptions import ConnectError, PromptTimeoutError, ProtocolError
from pdu_upgrade.models import Credentials

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_TIMEOUT = 10.0

# Until the family is known, any line ending in a usual prompt character
# is taken as the prompt. Classification narrows it afterwards.
GENERIC_PROMPT_PATTERN = r"[^\n]*[>#:$%]\s?$"

_PASSWORD_ARG = re.compile(r"(\bpassword\s+)\S+", re.IGNORECASE)

# How long close() waits for the transport to report it is gone
CLOSE_WAIT = 5.0


# =============================================================================
# ALGORITHM OVERRIDES
# =============================================================================

def build_disabled_algorithms(
    kex: list[str] | None = None,
    ciphers: list[str] | None = None,
    host_key_types: list[str] | None = None,
) -> dict[str, list[str]] | None:
    """
    Convert allow-lists of SSH algorithms into paramiko's deny-list format.

    Paramiko only lets you switch algorithms off, so "use only
    diffie-hellman-group1-sha1" becomes "disable every other kex".

    Returns None when nothing is overridden.
    """
    disabled: dict[str, list[str]] = {}
    wanted = {
        "kex": (kex, paramiko.Transport._preferred_kex),
        "ciphers": (ciphers, paramiko.Transport._preferred_ciphers),
        "keys": (host_key_types, paramiko.Transport._preferred_keys),
    }
    for key, (allowed, supported) in wanted.items():
        if not allowed:
            continue
        unknown = [a for a in allowed if a not in supported]
        if unknown:
            raise ValueError(f"Unsupported {key} algorithm(s): {', '.join(unknown)}")
        disabled[key] = [a for a in supported if a not in allowed]
    return disabled or None


# =============================================================================
# BRIDGE
# =============================================================================

class ShellBridge:
    """Prompt-synchronized command channel to one PDU."""

    def __init__(
        self,
        host: str,
        credentials: Credentials,
        *,
        port: int = 22,
        prompt_pattern: str | None = None,
        timeout: float = DEFAULT_PROMPT_TIMEOUT,
        conn_timeout: float = 30.0,
        disabled_algorithms: dict[str, list[str]] | None = None,
    ):
        self.host = host
        self.credentials = credentials
        self.port = port
        self.prompt_pattern = prompt_pattern or GENERIC_PROMPT_PATTERN
        self.timeout = timeout
        self.conn_timeout = conn_timeout
        self.disabled_algorithms = disabled_algorithms
        self.conn = None
        self.last_prompt = ""
        self._last_output = ""

    def __enter__(self) -> ShellBridge:
        if self.conn is None:
            self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self.conn is not None

    # ── connection lifecycle ──────────────────────────────────────────

    def _device_params(self) -> dict:
        return {
            "device_type": "terminal_server",
            "host": self.host,
            "port": self.port,
            "username": self.credentials.username,
            "password": self.credentials.password,
            "use_keys": False,
            "allow_agent": False,
            "ssh_strict": False,
            "system_host_keys": False,
            "alt_host_keys": False,
            "conn_timeout": self.conn_timeout,
            "auth_timeout": self.conn_timeout,
            "banner_timeout": self.conn_timeout,
            "disabled_algorithms": self.disabled_algorithms,
            "session_log": None,
        }

    def connect(self) -> ShellBridge:
        """Open the SSH shell and synchronize on the first prompt."""
        logger.info(f"Connecting to {self.host}:{self.port}")
        try:
            self.conn = ConnectHandler(**self._device_params())
        except NetmikoAuthenticationException as e:
            raise ConnectError(f"Authentication failed: {e}", host=self.host) from e
        except (NetmikoTimeoutException, paramiko.SSHException, OSError) as e:
            raise ConnectError(f"Unable to connect: {e}", host=self.host) from e

        self.conn.write_channel(self.conn.RETURN)
        self.wait_for_prompt()
        logger.info(f"Shell synchronized on {self.host}, prompt {self.last_prompt.strip()!r}")
        return self

    def close(self) -> None:
        """Disconnect and block until the transport is really gone."""
        if self.conn is None:
            return
        conn, self.conn = self.conn, None
        try:
            conn.disconnect()
        except (OSError, EOFError, paramiko.SSHException) as e:
            # Devices that are rebooting often drop the socket first
            logger.debug(f"Disconnect from {self.host} raised {e!r}")

        deadline = time.monotonic() + CLOSE_WAIT
        while conn.is_alive() and time.monotonic() < deadline:
            time.sleep(0.1)
        logger.info(f"Disconnected from {self.host}")

    def _require_connected(self) -> None:
        if self.conn is None:
            raise ProtocolError("Session is not connected", host=self.host)

    # ── prompt protocol ───────────────────────────────────────────────

    def wait_for_prompt(self, pattern: str | None = None, timeout: float | None = None) -> str:
        """
        Block until *pattern* appears at the end of the output stream.

        Returns the matched prompt text. Output preceding the prompt is
        kept for send() to pick up.
        """
        self._require_connected()
        pattern = pattern or self.prompt_pattern
        timeout = self.timeout if timeout is None else timeout

        try:
            output = self.conn.read_until_pattern(pattern=pattern, read_timeout=timeout)
        except ReadTimeout as e:
            raise PromptTimeoutError(
                f"Prompt /{pattern}/ not seen within {timeout}s", host=self.host
            ) from e
        except ReadException as e:
            raise ProtocolError(f"Unable to read prompt: {e}", host=self.host) from e
        except (OSError, EOFError) as e:
            raise ProtocolError(f"Shell closed while waiting for prompt: {e}", host=self.host) from e

        output = self.conn.normalize_linefeeds(output)
        match = None
        for match in re.finditer(pattern, output):
            pass
        if match is None:
            raise ProtocolError(f"Prompt /{pattern}/ missing from output", host=self.host)

        self.last_prompt = match.group(0)
        self._last_output = output[:match.start()]
        return self.last_prompt

    def write_line(self, text: str) -> None:
        """Write a line without waiting for anything back."""
        self._require_connected()
        logger.debug(f"{self.host} <<< {redact(text)!r}")
        try:
            self.conn.write_channel(text + self.conn.RETURN)
        except (OSError, EOFError) as e:
            raise ProtocolError(f"Shell closed while writing: {e}", host=self.host) from e

    def send(self, command: str, expect: str | None = None, timeout: float | None = None) -> list[str]:
        """
        Run a command and return its output lines.

        The echoed command and the trailing prompt are removed. *expect*
        overrides the prompt pattern, e.g. to stop at a yes/no question.
        """
        self.write_line(command)
        self.wait_for_prompt(expect, timeout)
        lines = strip_echo(self._last_output, command)
        for line in lines:
            logger.debug(f"{self.host} >>> {line}")
        return lines

    def send_confirmed(self, command: str, confirm_pattern: str, answer: str) -> list[str]:
        """Send a command that raises a confirmation question and answer it."""
        lines = self.send(command, expect=confirm_pattern)
        logger.info(f"{self.host}: confirming {command!r} with {answer!r}")
        self.write_line(answer)
        return lines


def strip_echo(output: str, command: str) -> list[str]:
    """Split raw output into lines, dropping the echoed command line."""
    lines = [line.rstrip() for line in output.split("\n")]
    if lines and lines[0].strip() == command.strip():
        lines = lines[1:]
    while lines and not lines[-1]:
        lines.pop()
    return lines


def connect(address: str, credentials: Credentials, **kwargs) -> ShellBridge:
    return ShellBridge(address, credentials, **kwargs).connect()


def redact(text: str) -> str:
    """Mask the argument of any password setting, e.g. 'set ftp password ***'."""
    return _PASSWORD_ARG.sub(r"\1***", text)


class RedactPasswords(logging.Filter):
    """Log filter masking password arguments, including in netmiko's channel logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg, record.args = masked, None
        return True
