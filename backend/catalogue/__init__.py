"""
Catalogue record store and editing routes.

This module provides:
- CatalogueStore: Read/write of data/books.json and data/config.json
- routes: Books, taxonomy and tags endpoints
"""
from catalogue.store import CatalogueStore, CatalogueStoreError

__all__ = [
    'CatalogueStore',
    'CatalogueStoreError',
]
