"""
Exceptions that stop a run.

Expected outcomes (a registry entry with no match, a geocoder miss) are
values, not exceptions. Only the conditions below abort.
"""


class GeotownsError(Exception):
    """Base class for fatal pipeline errors."""
    pass


class SourceError(GeotownsError):
    """Registry or OSM source could not be read."""
    pass


class ConfigError(GeotownsError):
    """Malformed override/denylist file or missing credentials."""
    pass


class PersistenceError(GeotownsError):
    """An output artifact could not be written."""
    pass
