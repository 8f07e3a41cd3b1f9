"""
Vendor profiles for the two supported PDU families.

Each family exposes a completely different management CLI. Everything
the rest of the package needs to know about a family (prompt shape,
info commands, firmware slots, file naming, markers) lives here so the
orchestration code never hard-codes vendor strings.

FAMILIES:
---------
ServerTech (Sentry / PRO):
    - One firmware image per device, named after the product line
      ("swcdu" for Sentry Switched/Smart CDU, "pro" for PRO1/PRO2).
    - The device fetches its own image over FTP when told where to look.

APC (NMC2 rack PDUs):
    - Three independently versioned images: boot monitor, AOS, and the
      rpdu2g application. They are pushed to the card one at a time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Family(str, Enum):
    SERVERTECH = "ServerTech"
    APC = "APC"


# APC component names in the order they must be applied: the boot monitor
# must never be older than what AOS and the application expect.
APC_BOOTMON = "bootmon"
APC_AOS = "aos"
APC_APP = "rpdu2g"
APC_COMPONENT_ORDER = (APC_BOOTMON, APC_AOS, APC_APP)

SERVERTECH_PRO = "pro"
SERVERTECH_CDU = "swcdu"
SERVERTECH_COMPONENTS = (SERVERTECH_PRO, SERVERTECH_CDU)


@dataclass(frozen=True)
class VendorProfile:
    """Static description of one vendor family's CLI."""

    family: Family
    prompt_pattern: str
    info_commands: tuple[str, ...]
    components: tuple[str, ...]
    descriptor_path: str
    binary_template: str
    restart_marker: str
    error_pattern: str
    restart_command: str
    restart_confirm_pattern: str
    restart_confirm_answer: str

    def is_error_line(self, line: str) -> bool:
        return re.search(self.error_pattern, line) is not None

    def has_restart_marker(self, line: str) -> bool:
        return self.restart_marker.lower() in line.lower()


SERVERTECH = VendorProfile(
    family=Family.SERVERTECH,
    prompt_pattern=r"(?:Switched|Smart) [CP]DU:\s?$",
    info_commands=("show system",),
    components=SERVERTECH_COMPONENTS,
    # One bare version string per product line
    descriptor_path="servertech/{component}/version.txt",
    binary_template="{component}-v{version}.bin",
    restart_marker="restart required",
    error_pattern=r"(?i)^\s*(?:invalid (?:command|request|argument)|command failed|access denied)",
    restart_command="restart",
    restart_confirm_pattern=r"\(Y/N\):?\s*$",
    restart_confirm_answer="Y",
)

APC = VendorProfile(
    family=Family.APC,
    prompt_pattern=r"apc>\s?$",
    info_commands=("prodinfo", "system"),
    components=APC_COMPONENT_ORDER,
    # Three name=version lines
    descriptor_path="apc/version.txt",
    binary_template="apc_hw05_{component}_{version}.bin",
    # E002: Reboot required for change to take effect.
    restart_marker="Reboot required",
    # E000-E002 are success codes, anything E100 and up is a failure
    error_pattern=r"^\s*E[1-9]\d\d:",
    restart_command="reboot",
    restart_confirm_pattern=r"Enter 'YES' to continue or <ENTER> to cancel\s*:?\s*$",
    restart_confirm_answer="YES",
)

PROFILES: dict[Family, VendorProfile] = {
    Family.SERVERTECH: SERVERTECH,
    Family.APC: APC,
}


def get_profile(family: Family) -> VendorProfile:
    return PROFILES[family]


def family_for_component(component: str) -> Family:
    if component in APC_COMPONENT_ORDER:
        return Family.APC
    if component in SERVERTECH_COMPONENTS:
        return Family.SERVERTECH
    raise ValueError(f"Unknown firmware component: {component}")


def strip_punctuation(version: str) -> str:
    """'6.5.2' -> '652', '8.0k' -> '80k'"""
    return re.sub(r"[^0-9A-Za-z]", "", version)


def derive_filename(component: str, version: str) -> str:
    """
    Build the firmware binary filename for a component at a given version.

    Examples:
        derive_filename("aos", "6.5.2")  -> "apc_hw05_aos_652.bin"
        derive_filename("pro", "8.0k")   -> "pro-v80k.bin"
    """
    profile = get_profile(family_for_component(component))
    return profile.binary_template.format(
        component=component,
        version=strip_punctuation(version),
    )
