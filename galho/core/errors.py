class GalhoError(Exception):
    """Base class for errors raised by galho."""


class TreeIntegrityError(GalhoError):
    """A tree value breaks a structural invariant (duplicate id, bad parent, cycle)."""


class LoaderError(GalhoError):
    """A child loader could not produce the children of a node."""

    def __init__(self, node_id: str, message: str) -> None:
        super().__init__(f"{node_id}: {message}")
        self.node_id = node_id


class ConfigError(GalhoError):
    """Invalid or unreadable settings."""
