"""opsdesk - tenant-scoped data access for the operations console.

Capability-gated, organization-scoped CRUD over the console's record
collections (businesses, zones, services, contents, growth areas).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
