"""Error types raised by catalog clients and the cache layer."""


class CatalogError(Exception):
    """Base class for failures talking to a remote catalog"""

    def __init__(self, source, message):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class NetworkFailure(CatalogError):
    """Transport error or non-2xx response from a catalog"""


class MalformedResponse(CatalogError):
    """Catalog answered, but not with the shape we expect"""


class CatalogUnavailable(CatalogError):
    """Catalog cannot be queried at all (e.g. missing API key)"""


class CacheCorrupt(Exception):
    """Persisted cache could not be decoded"""


class UnknownInstance(Exception):
    """No instance with this id is configured"""

    def __init__(self, instance_id):
        super().__init__(f"Unknown instance: {instance_id}")
        self.instance_id = instance_id
