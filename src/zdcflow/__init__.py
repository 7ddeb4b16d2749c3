"""Calibrated ZDC Q-vectors: gain equalisation and recentering of the spectator
plane vectors of the zero degree neutron calorimeters."""

__version__ = "0.1"
