"""Inventory service: product CRUD, image uploads and stock movements."""

__version__ = "1.0.0"
