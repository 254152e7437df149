"""
Entry point for stalkercfg LSP server.

Usage:
    python -m stalkercfg.lsp
"""

from .server import start_server

if __name__ == "__main__":
    start_server()
