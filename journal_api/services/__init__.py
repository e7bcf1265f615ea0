"""
Service Layer Package

Business logic between the HTTP routes and the key-value store.

Core Services:
- StructureRegistry: Structure versions and date resolution
- EntryStore: Daily entries, quick-fill
- ActionEngine: Action CRUD and registration
- reconciliation: Pure filters for stale actions and entry values
"""

from journal_api.services.container import ServiceContainer, build_container

__all__ = [
    "ServiceContainer",
    "build_container",
]
