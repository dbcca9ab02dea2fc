"""LeaseGate status API."""

from leasegate.api.router import router

__all__ = ["router"]
