"""Building blocks for a local development DNS daemon: completion setup, managed rc blocks, self-heal coordination, diagnostics, route health, restart planning and change tracking."""

__version__ = "0.1.0"