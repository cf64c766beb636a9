"""
Error Taxonomy
==============

Domain exceptions for the pet server.

    - ConfigError: no animations can be discovered (fatal at startup)
    - AssetError: a selected animation has no loadable frames
    - CapacityError: visitor store over capacity (resolved by eviction,
      never raised to callers)
"""


class PetServerError(Exception):
    """Base class for all pet server errors."""
    pass


class ConfigError(PetServerError):
    """Raised when no animation ids can be discovered."""
    pass


class AssetError(PetServerError):
    """Raised when an animation's frames cannot be listed or read."""
    pass


class CapacityError(PetServerError):
    """Visitor store capacity exceeded. Handled internally by eviction."""
    pass
