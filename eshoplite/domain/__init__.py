"""
Domain package for the eShopLite storefront.

Exports the read-only records returned by the backend services. Keep this
package focused on data definitions and decoding rules.
"""

from eshoplite.domain.models import Product, Resource, StoreInfo

__all__ = [
    "Product",
    "Resource",
    "StoreInfo",
]
