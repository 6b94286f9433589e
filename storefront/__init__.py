"""Catalog and order service: brands, products, and atomic order creation."""

__version__ = "0.1.0"
