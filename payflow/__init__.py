"""PayFlow: cross-chain invoice payments routed through LI.FI."""

__version__ = "0.1.0"
