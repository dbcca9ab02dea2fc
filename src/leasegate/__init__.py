"""LeaseGate - lease-based leader election over a shared lease record."""

__version__ = "0.1.0"
