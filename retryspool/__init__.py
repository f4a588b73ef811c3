"""PostgreSQL payload storage for a message retry spool.

This package provides:
- A data storage contract (store, read stream, write stream, delete)
- A relational backend keeping one row per message payload
- Named backends resolved from a Python configuration module
"""

__all__ = ["core"]
