"""Invoice composition package."""

from invoicer.billing.composer import InvoiceComposer, to_money

__all__ = ["InvoiceComposer", "to_money"]
