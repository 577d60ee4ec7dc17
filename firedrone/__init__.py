"""Thermal camera calibration, attitude control, payload logic and datalink for a fire-fighting quadcopter."""

__version__ = "0.1.0"