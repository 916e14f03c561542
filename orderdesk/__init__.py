"""Order fulfillment core: round-robin assignment, order lifecycle and inventory ledger."""

__version__ = "1.0.0"
