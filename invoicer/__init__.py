"""
Invoicer - Source Package

A small-business invoicing back end: clients, a product catalogue and
invoices made of line items, kept per owner with a full audit trail.

DESIGN PRINCIPLES:
1. Money is Decimal end-to-end, never float
2. Every record is scoped to its owner
3. Reject invalid input before anything is written
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Invoicer Team"
