"""Server-rendered dashboard: credential store, state machine and pages."""

from .controller import DashboardController, DashboardRegistry, DashboardState
from .fetcher import DashboardApi, DashboardApiError
from .session import CredentialStore, DashboardCredentials, FileCredentialStore, InMemoryCredentialStore

__all__ = [
    "CredentialStore",
    "DashboardApi",
    "DashboardApiError",
    "DashboardController",
    "DashboardCredentials",
    "DashboardRegistry",
    "DashboardState",
    "FileCredentialStore",
    "InMemoryCredentialStore",
]
