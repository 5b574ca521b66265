"""Catalog — product catalogue API.

Categories, products and WhatsApp inquiry links for a small shop,
with JWT auth separating regular users from administrators.
"""

__version__ = "2.0.0"
