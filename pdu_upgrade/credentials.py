"""
Credential handling for unattended and interactive runs.

These functions provide secure ways to handle PDU credentials for
scheduled runs without putting passwords in plain text.

Priority order:
    1. --creds-file (encrypted file, master password from CREDS_MASTER_PASS or prompt)
    2. --username / --password flags
    3. PDU_USER / PDU_PASS environment variables
    4. Interactive prompt
"""

from __future__ import annotations

import base64
import getpass
import json
import os
import sys
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from pdu_upgrade.models import Credentials

ENV_USER = "PDU_USER"
ENV_PASS = "PDU_PASS"
ENV_MASTER_PASS = "CREDS_MASTER_PASS"


def get_encryption_key(master_password: str, salt: bytes) -> bytes:
    """
    Derive a Fernet key from a master password.

    Uses PBKDF2 with a high iteration count so the credentials file can't
    be brute-forced cheaply.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=480000,
    )
    return base64.urlsafe_b64encode(kdf.derive(master_password.encode()))


def encrypt_credentials(creds: Credentials, master_password: str) -> dict[str, str]:
    """
    Build the on-disk credentials file structure:

    {
        "salt": "<base64-encoded-random-salt>",
        "data": "<fernet token>"
    }
    """
    salt = os.urandom(16)
    fernet = Fernet(get_encryption_key(master_password, salt))
    payload = json.dumps({"username": creds.username, "password": creds.password})
    return {
        "salt": base64.b64encode(salt).decode(),
        "data": fernet.encrypt(payload.encode()).decode(),
    }


def decrypt_credentials(file_data: dict[str, str], master_password: str) -> Credentials:
    """Raises ValueError on a malformed file or wrong master password."""
    try:
        salt = base64.b64decode(file_data["salt"])
        token = file_data["data"].encode()
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid credentials file format: {e}") from e

    try:
        decrypted = Fernet(get_encryption_key(master_password, salt)).decrypt(token)
    except InvalidToken as e:
        raise ValueError("Failed to decrypt credentials. Wrong master password?") from e

    data = json.loads(decrypted.decode())
    return Credentials(username=data["username"], password=data["password"])


def create_credentials_file(filepath: str) -> None:
    """Interactively create an encrypted credentials file."""
    print("\n" + "=" * 60)
    print("CREATE ENCRYPTED CREDENTIALS FILE")
    print("=" * 60)
    print(f"\nThis will create an encrypted file at: {filepath}")
    print("You'll set a master password to protect the credentials.\n")

    username = input("PDU username: ").strip()
    password = getpass.getpass("PDU password: ")

    while True:
        master_pass = getpass.getpass("Master password: ")
        master_confirm = getpass.getpass("Confirm master password: ")
        if master_pass == master_confirm:
            break
        print("Passwords don't match. Try again.\n")

    creds_path = Path(filepath)
    creds_path.write_text(json.dumps(
        encrypt_credentials(Credentials(username, password), master_pass), indent=2
    ))
    try:
        creds_path.chmod(0o600)
    except (OSError, NotImplementedError):
        pass  # Windows doesn't support chmod the same way

    print(f"\n✓ Credentials encrypted and saved to: {filepath}")
    print("\nUsage:")
    print(f"  python -m pdu_upgrade --hosts pdus.txt --creds-file {filepath}")
    print(f"For fully unattended runs, set {ENV_MASTER_PASS}.")


def load_credentials_file(filepath: str) -> Credentials:
    """Load and decrypt credentials; exits on failure like the rest of the CLI setup."""
    creds_path = Path(filepath)
    if not creds_path.exists():
        print(f"Error: Credentials file not found: {filepath}")
        sys.exit(1)

    try:
        file_data = json.loads(creds_path.read_text())
    except json.JSONDecodeError as e:
        print(f"Error: Invalid credentials file format: {e}")
        sys.exit(1)

    master_pass = os.environ.get(ENV_MASTER_PASS) or getpass.getpass(
        "Master password for credentials file: "
    )
    try:
        return decrypt_credentials(file_data, master_pass)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)


def get_credentials(args) -> Credentials:
    """Resolve credentials from file, flags, environment, or prompt."""
    if getattr(args, "creds_file", None):
        print("  Loading credentials from encrypted file...")
        return load_credentials_file(args.creds_file)

    username = args.username or os.environ.get(ENV_USER) or input("Username: ")
    password = args.password or os.environ.get(ENV_PASS) or getpass.getpass("Password: ")
    return Credentials(username=username, password=password)
