"""
Upgrade Sequencer
=================

Drives the actual firmware upgrade. The two families could hardly be
more different, so each gets its own sequence behind a shared upgrade()
entry point.

SERVERTECH (device pulls its own image):
----------------------------------------
  1. ConfigureTransferParams  - "set ftp host/username/password/directory/filename"
  2. InitiateRestartWithFetch - "restart ftpload"
  3. AwaitConfirmationPrompt  - the card always asks "(Y/N)"
  4. Confirm                  - answer "Y", then let it settle

  The answer is mandatory; without it the restart is cancelled. Closing
  the session before the settle delay has passed also cancels it. After
  that we hang up and do not look back: the card is busy fetching and
  flashing, and there is nothing more to ask it.

APC (we push each image):
-------------------------
  For bootmon, then aos, then rpdu2g (always in that order, skipping the
  ones already current):
  1. EnsureLocalBinaryPresent - download into the staging dir unless cached
  2. PushBinaryToDevice       - FTP upload to the card
  3. AwaitDeviceSelfReboot    - settle delay; the port lingers briefly
  4. PollUntilReachable       - wait for SSH to answer again

  One component is fully done (pushed, rebooted, reachable) before the
  next one starts.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pdu_upgrade.bridge import redact
from pdu_upgrade.console import print_section
from pdu_upgrade.exceptions import PromptTimeoutError, TransferError, UpgradeError
from pdu_upgrade.models import DeviceSession, FirmwareComponent, UpgradeOptions
from pdu_upgrade.reachability import await_reachable
from pdu_upgrade.transfer import PushOutcome, SourceUrl, push_firmware
from pdu_upgrade.vendors import APC_COMPONENT_ORDER, Family

logger = logging.getLogger(__name__)

# Answered with the same (Y/N) confirmation as a plain restart
SERVERTECH_FETCH_COMMAND = "restart ftpload"


# =============================================================================
# SERVERTECH
# =============================================================================

def servertech_transfer_commands(source: SourceUrl, component: FirmwareComponent) -> list[str]:
    """The five settings telling the card where to fetch its image from."""
    return [
        f"set ftp host {source.host}",
        f"set ftp username {source.username}",
        f"set ftp password {source.password}",
        f"set ftp directory {source.join('servertech', component.name)}",
        f"set ftp filename {component.filename}",
    ]


def upgrade_servertech(
    session: DeviceSession,
    components: list[str],
    source: SourceUrl,
    options: UpgradeOptions,
) -> None:
    bridge = session.bridge
    profile = session.profile
    # Single-image family: there is at most one component
    component = session.component(components[0])

    print_section(f"Staging {component.filename}")
    logger.info(f"{session.address}: configuring FTP fetch of {component.filename}")
    for command in servertech_transfer_commands(source, component):
        for line in bridge.send(command):
            if profile.is_error_line(line):
                raise UpgradeError(f"{redact(command)!r} failed: {line.strip()}")
    print(f"  ✓ FTP source set to {source.host}")

    print_section("Restarting With Firmware Fetch")
    try:
        bridge.send_confirmed(
            SERVERTECH_FETCH_COMMAND,
            profile.restart_confirm_pattern,
            profile.restart_confirm_answer,
        )
    except PromptTimeoutError as e:
        raise UpgradeError(f"No confirmation prompt after {SERVERTECH_FETCH_COMMAND!r}") from e

    time.sleep(options.servertech_settle)
    bridge.close()
    print(f"  ✓ Restart confirmed, {session.address} is fetching {component.filename}")
    logger.info(f"{session.address}: restart with fetch confirmed, not waiting for outcome")


# =============================================================================
# APC
# =============================================================================

def ensure_local_binary(store, component: FirmwareComponent, staging_dir: Path) -> Path:
    """Return the local path of a component image, downloading it if missing."""
    local = Path(staging_dir) / component.filename
    if local.exists() and local.stat().st_size > 0:
        logger.info(f"Using cached {local}")
        print(f"  Using cached {local.name}")
        return local
    print(f"  Downloading {component.filename}...")
    return store.fetch_binary(f"apc/{component.filename}", local)


def upgrade_apc(
    session: DeviceSession,
    components: list[str],
    store,
    options: UpgradeOptions,
    pusher=None,
    poller=None,
) -> None:
    pusher = pusher or push_firmware
    poller = poller or await_reachable

    # The card reboots after each push, which takes the shell down anyway
    session.bridge.close()

    for name in APC_COMPONENT_ORDER:
        if name not in components:
            continue
        component = session.component(name)
        print_section(f"Upgrading {name} to {component.version}")

        local = ensure_local_binary(store, component, options.staging_dir)

        outcome = pusher(session.address, session.credentials, local)
        if outcome is PushOutcome.REMOTE_CLOSED:
            print(f"  ✓ {local.name} delivered, {session.address} closed the connection")
        else:
            print(f"  ✓ {local.name} delivered")

        logger.info(f"{session.address}: waiting {options.apc_settle}s for {name} reboot to start")
        time.sleep(options.apc_settle)

        print(f"  Waiting for {session.address} to come back...")
        poller(
            session.address,
            options.port,
            per_attempt_timeout=options.poll_attempt_timeout,
            interval=options.poll_interval,
            max_attempts=options.reboot_max_attempts,
            max_wait=options.reboot_max_wait,
        )
        session.firmware[name].installed = component.version
        print(f"  ✓ {name} {component.version} applied, {session.address} is back")


# =============================================================================
# ENTRY POINT
# =============================================================================

def upgrade(session: DeviceSession, components: list[str], store, options: UpgradeOptions) -> None:
    """Apply every pending component using the family's sequence."""
    if not components:
        return
    for name in components:
        if session.firmware[name].desired is None:
            raise TransferError(f"No desired version known for {name}")

    if session.family is Family.SERVERTECH:
        upgrade_servertech(session, components, store.source, options)
    elif session.family is Family.APC:
        upgrade_apc(session, components, store, options)
    else:
        raise UpgradeError(f"No upgrade sequence for family {session.family}")
