"""
Device Classifier
=================

Works out which vendor family and model we are talking to, and what
firmware it runs, purely from what the shell shows us.

  1. Send an empty command to get a fresh prompt
  2. Match the prompt against each family's pattern. Exactly one must
     match; zero or several means we refuse to guess. From then on the
     bridge waits for that family's prompt only.
  3. Run the family's info commands and parse the required fields.
     Any missing field fails the device with the field's name.
"""

from __future__ import annotations

import logging
import re

from pdu_upgrade.exceptions import ClassificationError
from pdu_upgrade.models import DeviceSession, FirmwareState
from pdu_upgrade.parsers import (
    Parsed,
    parse_apc_aos_version,
    parse_apc_app_version,
    parse_apc_bootmon_version,
    parse_apc_model,
    parse_servertech_model,
    parse_servertech_product,
    parse_servertech_version,
    servertech_component,
)
from pdu_upgrade.vendors import APC_AOS, APC_APP, APC_BOOTMON, PROFILES, Family

logger = logging.getLogger(__name__)


def detect_family(prompt: str, profiles=None) -> Family:
    """Return the one family whose prompt pattern matches *prompt*."""
    profiles = profiles if profiles is not None else PROFILES.values()
    matches = [p.family for p in profiles if re.search(p.prompt_pattern, prompt)]
    if not matches:
        raise ClassificationError(f"Unrecognized prompt {prompt.strip()!r}")
    if len(matches) > 1:
        names = ", ".join(f.value for f in matches)
        raise ClassificationError(f"Prompt {prompt.strip()!r} matches several families: {names}")
    return matches[0]


def require(parsed: Parsed, command: str) -> str:
    if not parsed.matched:
        raise ClassificationError(f"Could not find {parsed.field} in '{command}' output")
    return parsed.value


def _classify_servertech(session: DeviceSession) -> None:
    text = "\n".join(session.bridge.send("show system"))

    session.model = require(parse_servertech_model(text), "show system")
    product = require(parse_servertech_product(text), "show system")
    version = require(parse_servertech_version(text), "show system")

    component = servertech_component(product)
    if component is None:
        raise ClassificationError(f"Unknown ServerTech product line {product!r}")
    session.firmware = {component: FirmwareState(installed=version)}


def _classify_apc(session: DeviceSession) -> None:
    prodinfo = "\n".join(session.bridge.send("prodinfo"))
    system = "\n".join(session.bridge.send("system"))

    session.model = require(parse_apc_model(prodinfo), "prodinfo")
    session.firmware = {
        APC_BOOTMON: FirmwareState(require(parse_apc_bootmon_version(system), "system")),
        APC_AOS: FirmwareState(require(parse_apc_aos_version(prodinfo), "prodinfo")),
        APC_APP: FirmwareState(require(parse_apc_app_version(prodinfo), "prodinfo")),
    }


def classify(session: DeviceSession, profiles=None) -> DeviceSession:
    """Fill in family, model, and installed firmware on *session*."""
    session.bridge.send("")
    prompt = session.bridge.last_prompt
    session.family = detect_family(prompt, profiles)
    session.bridge.prompt_pattern = session.profile.prompt_pattern
    logger.info(f"{session.address}: prompt {prompt.strip()!r} -> {session.family.value}")

    if session.family is Family.SERVERTECH:
        _classify_servertech(session)
    else:
        _classify_apc(session)

    installed = ", ".join(f"{k}={v}" for k, v in session.installed_versions().items())
    logger.info(f"{session.address}: {session.family.value} {session.model} ({installed})")
    return session
