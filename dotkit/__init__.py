"""dotkit: personal environment bootstrap and reconciliation kit."""

__version__ = "0.1.0"
