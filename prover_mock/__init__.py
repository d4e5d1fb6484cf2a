"""Local mock of a remote proving service's REST API."""

__version__ = "0.1.0"
