"""
Command Runner
==============

Applies an optional pre-upgrade command script to a PDU, one command at a
time, and reports whether any command asked for a restart.

Scripts are plain text, one CLI command per line, stored per model:

    <commands dir>/<family>/<model>.txt

Blank lines and lines starting with # are skipped.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pdu_upgrade.exceptions import PromptTimeoutError, UpgradeError
from pdu_upgrade.models import DeviceSession
from pdu_upgrade.vendors import Family

logger = logging.getLogger(__name__)


def load_script(directory: Path | str, family: Family, model: str) -> list[str] | None:
    """Load the command script for a model, or None if there isn't one."""
    path = Path(directory) / family.value.lower() / f"{model}.txt"
    if not path.exists():
        logger.info(f"No command script for {family.value} {model} ({path})")
        return None

    commands = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            commands.append(line)
    logger.info(f"Loaded {len(commands)} command(s) from {path}")
    return commands


def run(session: DeviceSession, commands: list[str]) -> bool:
    """
    Run every command and scan every output line.

    Returns True if any line of any command carried the family's
    "restart required" marker. A line matching the family's error
    pattern stops the script right there.
    """
    profile = session.profile
    restart_required = False

    for command in commands:
        lines = session.bridge.send(command)
        for line in lines:
            if profile.is_error_line(line):
                raise UpgradeError(f"Command {command!r} failed: {line.strip()}")
            if profile.has_restart_marker(line):
                logger.info(f"{session.address}: {command!r} requires a restart")
                restart_required = True

    session.restart_required = session.restart_required or restart_required
    return restart_required


def restart_device(session: DeviceSession, settle: float = 2.0) -> None:
    """Restart the management card and drop the session."""
    profile = session.profile
    try:
        session.bridge.send_confirmed(
            profile.restart_command,
            profile.restart_confirm_pattern,
            profile.restart_confirm_answer,
        )
    except PromptTimeoutError as e:
        raise UpgradeError(f"No confirmation prompt after {profile.restart_command!r}") from e

    # Closing too early makes the card abandon the restart
    time.sleep(settle)
    session.bridge.close()
    logger.info(f"{session.address}: restart issued")
