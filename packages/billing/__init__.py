"""
Billing package - metered charges, payment methods and Stripe reconciliation.

This package integrates with:
- Stripe: Customers, payment methods, invoicing and webhooks

Free-tier quota lives in packages.usage; paying users are charged per action
through InvoiceIssuer.
"""
