"""
Reconciliation Engine
=====================

Decides which firmware components need to be updated.

Vendor version strings are not reliably orderable ("8.0k", "7.1c", ...),
so there is no "newer than" check. Any difference in either direction
means the component gets the desired image.
"""

from __future__ import annotations

import logging

from pdu_upgrade.exceptions import TransferError
from pdu_upgrade.models import DeviceSession
from pdu_upgrade.vendors import Family

logger = logging.getLogger(__name__)


def reconcile(
    installed: dict[str, str],
    desired: dict[str, str],
    order: tuple[str, ...] | list[str] | None = None,
) -> list[str]:
    """
    List the components whose installed version differs from the desired one.

    With *order*, the result is filtered from that sequence and keeps its
    order no matter how the input dicts were built.
    """
    names = list(order) if order is not None else list(desired)
    return [
        name for name in names
        if name in desired and installed.get(name) != desired[name]
    ]


def parse_descriptor(family: Family, text: str, components) -> dict[str, str]:
    """
    Parse a version descriptor fetched from the version store.

    ServerTech descriptors hold one bare version string for the single
    component. APC descriptors hold one name=version line per component.
    """
    if family is Family.SERVERTECH:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if not lines:
            raise TransferError("ServerTech version descriptor is empty")
        return {name: lines[0] for name in components}

    versions: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        name, _, version = line.partition("=")
        versions[name.strip()] = version.strip()

    missing = [name for name in components if not versions.get(name)]
    if missing:
        raise TransferError(f"APC version descriptor has no entry for: {', '.join(missing)}")
    return {name: versions[name] for name in components}


def load_desired_versions(session: DeviceSession, store) -> dict[str, str]:
    """Fetch the descriptor(s) for the session's family and record them."""
    profile = session.profile
    installed = list(session.firmware)

    if session.family is Family.SERVERTECH:
        desired: dict[str, str] = {}
        for component in installed:
            path = profile.descriptor_path.format(component=component)
            desired.update(parse_descriptor(session.family, store.fetch_descriptor(path), [component]))
    else:
        text = store.fetch_descriptor(profile.descriptor_path)
        desired = parse_descriptor(session.family, text, profile.components)

    session.set_desired(desired)
    return desired


def components_to_update(session: DeviceSession) -> list[str]:
    """Components needing an update, in the family's canonical order."""
    pending = reconcile(
        session.installed_versions(),
        session.desired_versions(),
        order=session.profile.components,
    )
    for name in pending:
        state = session.firmware[name]
        logger.info(f"{session.address}: {name} {state.installed} -> {state.desired}")
    return pending
