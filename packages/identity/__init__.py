"""
Identity package - reads and writes per-user metadata on the identity record.

The identity provider (Auth0) stores usage count, registration flag and the
linked Stripe customer id in each user's app_metadata.
"""
