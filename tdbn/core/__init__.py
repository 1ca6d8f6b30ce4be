"""Core module for tdbn.

This module contains the basic types of a dynamic Bayesian network and the
configuration codec used to count observations.
"""

from .types import Attribute, Edge
from .configuration import (
    WILDCARD,
    Configuration,
    LocalConfiguration,
    MutableConfiguration,
)

__all__ = [
    "Attribute",
    "Edge",
    "WILDCARD",
    "Configuration",
    "LocalConfiguration",
    "MutableConfiguration",
]
