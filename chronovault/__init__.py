"""Time-locked seals stored on an EVM ledger and read back through a subgraph."""

__version__ = "0.1.0"
