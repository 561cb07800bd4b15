"""refund-desk: shipping refund reconciliation for order exports."""

__version__ = "0.1.0"
