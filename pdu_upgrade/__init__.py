"""Firmware reconciliation and staged upgrades for ServerTech and APC PDUs."""

__version__ = "1.0.0"
