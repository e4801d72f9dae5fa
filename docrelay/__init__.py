"""
Document Relay - hands office documents to an online viewer without disk.

This package contains the complete application:
- core: Framework-agnostic relay logic (tracker, range reads, expiry sweep)
- infrastructure: The in-memory object store
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
