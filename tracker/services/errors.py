"""Sync engine errors"""


class SyncError(Exception):
    """Base class for sync failures"""


class IntegrationNotConfigured(SyncError):
    """No enabled integration for the user; fatal to a run"""


class NoLibrariesFound(SyncError):
    """Media server exposes no TV libraries; fatal to a run"""


class ShowNotResolvable(SyncError):
    """No canonical show matched; fatal only to that show"""

    def __init__(self, title: str, provider: str = "Trakt"):
        self.title = title
        super().__init__(f"Could not find show on {provider}: {title}")


class CredentialError(SyncError):
    """Stored credential could not be encrypted or decrypted"""
