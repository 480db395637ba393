"""Adapters package initialization."""
from stockwatch.adapters.schema_org import SchemaOrgExtractor
from stockwatch.adapters.gtm_datalayer import GtmDataLayerExtractor
from stockwatch.adapters.shopify import ShopifyAdapter
from stockwatch.adapters.site_specific import SiteAdapter, SiteAdapterRegistry, default_registry

__all__ = [
    "SchemaOrgExtractor",
    "GtmDataLayerExtractor",
    "ShopifyAdapter",
    "SiteAdapter",
    "SiteAdapterRegistry",
    "default_registry",
]
