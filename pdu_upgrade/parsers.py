"""
Text parsers for PDU CLI output.

Each function pulls exactly one field out of free-form command output
and returns a Parsed result. A parser never guesses: if the pattern is
not there, the result is a no-match and the caller decides what to do.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from pdu_upgrade.vendors import SERVERTECH_CDU, SERVERTECH_PRO


class Parsed(NamedTuple):
    field: str
    value: str | None

    @property
    def matched(self) -> bool:
        return self.value is not None


def _search(field: str, pattern: str, text: str) -> Parsed:
    match = re.search(pattern, text, re.MULTILINE | re.IGNORECASE)
    if match:
        return Parsed(field, match.group(1).strip())
    return Parsed(field, None)


def _strip_v(version: str | None) -> str | None:
    if version and version[0] in "vV" and len(version) > 1 and version[1].isdigit():
        return version[1:]
    return version


# =============================================================================
# SERVERTECH ("show system")
# =============================================================================
# Sample:
#     Firmware:          Sentry Switched CDU Version 7.0a
#     Model:             CW-24V2-L30M

def parse_servertech_model(text: str) -> Parsed:
    return _search("model", r"^\s*Model:\s*(\S+)", text)


def parse_servertech_product(text: str) -> Parsed:
    return _search("product", r"^\s*Firmware:\s*(.+?)\s+Version\b", text)


def parse_servertech_version(text: str) -> Parsed:
    parsed = _search("firmware version", r"^\s*Firmware:.*?\bVersion\s+(\S+)", text)
    return Parsed(parsed.field, _strip_v(parsed.value))


def servertech_component(product: str) -> str | None:
    """Firmware slot for a product line: PRO1/PRO2 run "pro", Sentry CDUs "swcdu"."""
    words = product.upper().split()
    if any(re.fullmatch(r"PRO\d*", word) for word in words):
        return SERVERTECH_PRO
    if "CDU" in words:
        return SERVERTECH_CDU
    return None


# =============================================================================
# APC ("prodinfo" and "system")
# =============================================================================
# prodinfo sample:
#     Network Management Card AOS      v6.5.2
#     Rack PDU 2G APP                  v6.5.0
#     Model Number:                    AP8941
# system sample:
#     Bootmon:                         bootmon:v1.0.8

def parse_apc_model(text: str) -> Parsed:
    return _search("model", r"^\s*Model(?: Number)?:\s*(\S+)", text)


def parse_apc_aos_version(text: str) -> Parsed:
    parsed = _search("AOS version", r"\bAOS\s+(v?\d\S*)", text)
    return Parsed(parsed.field, _strip_v(parsed.value))


def parse_apc_app_version(text: str) -> Parsed:
    parsed = _search("application version", r"\bAPP\s+(v?\d\S*)", text)
    return Parsed(parsed.field, _strip_v(parsed.value))


def parse_apc_bootmon_version(text: str) -> Parsed:
    parsed = _search("boot monitor version", r"^\s*Boot\s*mon(?:itor)?:\s*(?:bootmon:)?(v?\d\S*)", text)
    return Parsed(parsed.field, _strip_v(parsed.value))
