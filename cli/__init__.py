"""
CLI for the chain assembler.

Command-line entry points to rebuild and inspect chunk chains.
"""

from .assemble_cli import main

__all__ = ["main"]
