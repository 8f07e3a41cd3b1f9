"""Per-device state and run-wide options."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pdu_upgrade.vendors import Family, VendorProfile, derive_filename, get_profile


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class FirmwareComponent:
    """A firmware slot at a specific version."""

    name: str
    version: str

    @property
    def filename(self) -> str:
        return derive_filename(self.name, self.version)


@dataclass
class FirmwareState:
    installed: str
    desired: str | None = None

    @property
    def needs_update(self) -> bool:
        return self.desired is not None and self.installed != self.desired


@dataclass
class DeviceSession:
    """
    Everything known about one PDU during its upgrade workflow.

    Created when the shell connects and discarded when the workflow ends.
    Nothing in here is shared with any other device.
    """

    address: str
    bridge: Any
    credentials: Credentials | None = None
    family: Family | None = None
    model: str | None = None
    firmware: dict[str, FirmwareState] = field(default_factory=dict)
    restart_required: bool = False

    @property
    def profile(self) -> VendorProfile:
        if self.family is None:
            raise RuntimeError(f"{self.address} has not been classified yet")
        return get_profile(self.family)

    def installed_versions(self) -> dict[str, str]:
        return {name: state.installed for name, state in self.firmware.items()}

    def desired_versions(self) -> dict[str, str]:
        return {
            name: state.desired
            for name, state in self.firmware.items()
            if state.desired is not None
        }

    def set_desired(self, desired: dict[str, str]) -> None:
        for name, version in desired.items():
            if name in self.firmware:
                self.firmware[name].desired = version

    def component(self, name: str) -> FirmwareComponent:
        """The component at its desired version."""
        state = self.firmware[name]
        return FirmwareComponent(name, state.desired or state.installed)


@dataclass
class UpgradeOptions:
    """Tunables for a run. Built from command-line arguments by the CLI."""

    port: int = 22
    prompt_timeout: float = 10.0
    conn_timeout: float = 30.0
    # Settle delays (seconds) after disruptive commands
    servertech_settle: float = 2.0
    restart_settle: float = 2.0
    apc_settle: float = 5.0
    # Reboot-readiness polling
    poll_interval: float = 10.0
    poll_attempt_timeout: float = 5.0
    reboot_max_attempts: int | None = None
    reboot_max_wait: float | None = None
    staging_dir: Path = Path("./firmware")
    # Legacy SSH algorithm overrides, None means library defaults
    kex_algorithms: list[str] | None = None
    ciphers: list[str] | None = None
    host_key_types: list[str] | None = None
    stop_on_error: bool = False
