from typing import Dict, Optional


class DirectoryError(Exception):
    """Base class for drug directory errors."""


class TransientNetworkError(DirectoryError):
    """One fetch attempt failed in a way worth retrying (transport, 5xx, bad JSON)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TerminalFetchError(DirectoryError):
    """All fetch attempts were used up."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class MalformedRecord(DirectoryError):
    """A raw report can't be turned into a DrugRecord (no safetyreportid)."""


class CredentialError(DirectoryError):
    """Login failed; the message is meant for the user."""


class NoCredential(CredentialError):
    def __init__(self, message: str = "No registered user found"):
        super().__init__(message)


class CredentialMismatch(CredentialError):
    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class CredentialStoreError(CredentialError):
    """The local store exists but can't be read back as a user."""

    def __init__(self, message: str = "An error occurred while logging in"):
        super().__init__(message)


class RegistrationError(DirectoryError):
    def __init__(self, errors: Dict[str, str]):
        # first message first, like a form showing its top error
        first = next(iter(errors.values()), "Invalid registration")
        super().__init__(first)
        self.errors = errors
