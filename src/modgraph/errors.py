"""Base exception for modgraph."""


class ModgraphError(Exception):
    """Base class for every error raised by modgraph."""
    pass
