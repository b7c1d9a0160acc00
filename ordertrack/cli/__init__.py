"""ordertrack command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``ordertrack`` script).
"""

from ordertrack.cli.main import cli

__all__ = ["cli"]
