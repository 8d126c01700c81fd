import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from .errors import CredentialMismatch, CredentialStoreError, NoCredential, RegistrationError
from .models import Credential

logger = logging.getLogger("drug_directory.credentials")

USER_KEY = "user"
MIN_PASSWORD_LENGTH = 6
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CredentialStore:
    """One registered user, kept as JSON under a fixed key in a local file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"unreadable credential store {self.path}: {e}")
            raise CredentialStoreError() from e
        return data if isinstance(data, dict) else {}

    def get_credential(self) -> Optional[Credential]:
        raw = self._read().get(USER_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            return Credential.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"stored user in {self.path} is malformed: {e}")
            raise CredentialStoreError() from e

    def set_credential(self, credential: Credential) -> None:
        try:
            data = self._read()
        except CredentialStoreError:
            # a fresh registration replaces a store we can't read
            data = {}
        data[USER_KEY] = credential.model_dump(by_alias=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)


def validate_registration(credential: Credential) -> Dict[str, str]:
    """Field -> message for everything wrong with a registration form. Empty if valid."""
    errors: Dict[str, str] = {}
    if not credential.name.strip():
        errors["name"] = "Name is required"
    if not credential.email.strip():
        errors["email"] = "Email is required"
    elif not _EMAIL_RE.match(credential.email.strip()):
        errors["email"] = "Email is invalid"
    if not credential.username.strip():
        errors["username"] = "Username is required"
    if not credential.password:
        errors["password"] = "Password is required"
    elif len(credential.password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if credential.confirm_password != credential.password:
        errors["confirm_password"] = "Passwords do not match"
    return errors


def register(store: CredentialStore, credential: Credential) -> Credential:
    errors = validate_registration(credential)
    if errors:
        raise RegistrationError(errors)
    # a new registration replaces whoever was stored before
    store.set_credential(credential)
    logger.info(f"registered user {credential.username!r}")
    return credential


def login(store: CredentialStore, username: str, password: str) -> Credential:
    """Plain compare against the stored user. Raises NoCredential or CredentialMismatch."""
    stored = store.get_credential()
    if stored is None:
        raise NoCredential()
    if username != stored.username or password != stored.password:
        raise CredentialMismatch()
    return stored
