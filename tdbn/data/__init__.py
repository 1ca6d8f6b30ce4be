"""Observation data for tdbn."""

from tdbn.data.observations import MISSING, Observations

__all__ = ["MISSING", "Observations"]
