"""Synthetic sensor feeds."""

from coopclimate.simulation.sensor_simulator import NOISE_AMPLITUDE, SensorSimulator

__all__ = ["NOISE_AMPLITUDE", "SensorSimulator"]
