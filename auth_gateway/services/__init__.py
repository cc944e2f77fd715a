"""Service layer exports."""

from .auth_operations import AuthOperationsService
from .derived_credentials import DerivedCredentialService
from .google_linking import GoogleAccountLinker, LinkErrorKind, LinkOutcome, LinkState

__all__ = [
    "AuthOperationsService",
    "DerivedCredentialService",
    "GoogleAccountLinker",
    "LinkErrorKind",
    "LinkOutcome",
    "LinkState",
]
