"""
stalkercfg Language Server Protocol implementation.

Provides IDE features for STALKER 2 .cfg files:
- Diagnostics on open, change and save
- Document formatting (indentation)
"""

from .server import start_server

__all__ = ["start_server"]
