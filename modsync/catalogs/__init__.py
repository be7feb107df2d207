"""Catalog clients for remote content catalogs"""
from modsync.catalogs.base import CatalogClient
from modsync.catalogs.modrinth import ModrinthCatalog
from modsync.catalogs.curseforge import CurseForgeCatalog

CATALOG_CLASSES = {
    "modrinth": ModrinthCatalog,
    "curseforge": CurseForgeCatalog,
}


def get_catalog(source, cfg, session=None):
    """Factory: return the right catalog client for this source"""
    cls = CATALOG_CLASSES.get(source.lower())
    if cls is None:
        raise ValueError(f"Unknown catalog: {source}")
    return cls(cfg, session=session)


def get_catalogs(cfg, session=None):
    """Clients for every source in cfg['catalog_sources'], keyed by source"""
    return {source: get_catalog(source, cfg, session=session)
            for source in cfg.get("catalog_sources", ["modrinth"])}


__all__ = ["CatalogClient", "ModrinthCatalog", "CurseForgeCatalog", "get_catalog", "get_catalogs"]
