"""Canned PDU transcripts and a fake netmiko connection that replays them."""

from __future__ import annotations

import re

from netmiko.exceptions import ReadTimeout

from pdu_upgrade.bridge import ShellBridge
from pdu_upgrade.models import Credentials

CREDS = Credentials(username="admn", password="secret")

# ── Prompts ──────────────────────────────────────────────────────────────

SERVERTECH_PROMPT = "Switched CDU: "
SERVERTECH_PRO_PROMPT = "Switched PDU: "
APC_PROMPT = "apc>"

# ── ServerTech "show system" ─────────────────────────────────────────────

SHOW_SYSTEM_CDU = """\

System Information

   Firmware:          Sentry Switched CDU Version 7.0a
   Model:             CW-24V2-L30M
   Hardware:          Rev F
   Uptime:            133 days 4 hours 12 minutes

Command successful
"""

SHOW_SYSTEM_PRO = """\

System Information

   Firmware:          Sentry PRO2 Switched PDU Version 8.0j
   Model:             C2WG24MA-DGAF2M66
   Uptime:            41 days 0 hours 7 minutes

Command successful
"""

SHOW_SYSTEM_NO_MODEL = """\

System Information

   Firmware:          Sentry Switched CDU Version 7.0a

Command successful
"""

SERVERTECH_OK = "\nCommand successful\n"
SERVERTECH_INVALID = "\nInvalid command\n"
SERVERTECH_CONFIRM = "\nRestart ftp-load? (Y/N): "
SERVERTECH_RESTART_CONFIRM = "\nRestart the CDU? (Y/N): "

# ── APC "prodinfo" / "system" ────────────────────────────────────────────

APC_PRODINFO = """\
E000: Success
NMC Serial Number:      5A1234E56789
NMC Hardware Revision:  HW05
Network Management Card AOS      v6.5.2
Rack PDU 2G APP                  v6.5.0
Model Number:                    AP8941
Manufacture Date:                03/14/2015
"""

APC_SYSTEM = """\
E000: Success
Host Name Sync: Disabled
Name:           pdu-r12-a
Contact:        noc@example.com
Location:       DC1 Row 12
Up Time:        12 Days 3 Hours 22 Minutes
Stat:           P+ N+ A+
Bootmon:        bootmon:v1.0.8
"""

APC_SYSTEM_NO_BOOTMON = """\
E000: Success
Name:           pdu-r12-a
Up Time:        12 Days 3 Hours 22 Minutes
"""

APC_SUCCESS = "E000: Success\n"
APC_REBOOT_REQUIRED = "E002: Reboot required for change to take effect.\n"
APC_PARAM_ERROR = "E102: Parameter Error\n"
APC_REBOOT_CONFIRM = "\nEnter 'YES' to continue or <ENTER> to cancel : "

APC_DESCRIPTOR = "bootmon=1.0.9\naos=6.9.6\nrpdu2g=6.9.6\n"


# ── Fake netmiko connection ──────────────────────────────────────────────

HANG = object()


class Question(str):
    """A reply that ends in a question instead of the shell prompt."""


class FakeConnection:
    """
    Stands in for a netmiko BaseConnection.

    Each write queues a command; each read_until_pattern replays the echo,
    the canned reply, and the prompt for the oldest queued command.
    """

    RETURN = "\n"

    def __init__(self, responses: dict | None = None, prompt: str = APC_PROMPT):
        self.responses = dict(responses or {})
        self.prompt = prompt
        self.written: list[str] = []
        self.commands: list[str] = []
        self._queue: list[str] = []
        self.alive = True

    def write_channel(self, data: str) -> None:
        self.written.append(data)
        command = data[:-len(self.RETURN)] if data.endswith(self.RETURN) else data
        self.commands.append(command)
        self._queue.append(command)

    def read_until_pattern(self, pattern="", read_timeout=10.0, re_flags=0, max_loops=None):
        command = self._queue.pop(0) if self._queue else None
        reply = self.responses.get(command, "") if command is not None else HANG
        if reply is HANG:
            raise ReadTimeout(f"Pattern not detected: {pattern!r}")

        if isinstance(reply, Question):
            output = f"{command}\r\n{reply}"
        else:
            body = reply.replace("\n", "\r\n")
            output = f"{command}\r\n{body}{self.prompt}"
        if not re.search(pattern, output, flags=re_flags):
            raise ReadTimeout(f"Pattern not detected: {pattern!r}")
        return output

    def normalize_linefeeds(self, a_string: str) -> str:
        return re.sub(r"\r\r\n|\r\n|\n\r", "\n", a_string)

    def disconnect(self) -> None:
        self.alive = False

    def is_alive(self) -> bool:
        return self.alive


def make_bridge(responses=None, prompt=APC_PROMPT, host="10.0.0.10", timeout=10.0) -> ShellBridge:
    """A ShellBridge already wired to a FakeConnection (no baseline read)."""
    bridge = ShellBridge(host, CREDS, timeout=timeout)
    bridge.conn = FakeConnection(responses, prompt)
    return bridge


class FakeStore:
    """Version store double recording every fetch."""

    def __init__(self, descriptors: dict[str, str] | None = None, source=None, events=None):
        self.descriptors = descriptors or {}
        self.source = source
        self.events = events if events is not None else []

    def fetch_descriptor(self, path: str) -> str:
        self.events.append(("descriptor", path))
        if path not in self.descriptors:
            from pdu_upgrade.exceptions import TransferError
            raise TransferError(f"No such file {path}")
        return self.descriptors[path]

    def fetch_binary(self, path: str, local_destination):
        self.events.append(("fetch", path))
        local_destination.parent.mkdir(parents=True, exist_ok=True)
        local_destination.write_bytes(b"\x00firmware")
        return local_destination
