"""
Control Loops Package
=====================

Climate decision logic for farms:

    Reading ──► evaluate() ──► (next ActuatorState, critical Alert?)
                classify() ──► TemperatureStatus for dashboards
"""

from coopclimate.control_loops.climate_evaluator import Evaluation, banner_alert, classify, evaluate

__all__ = ["Evaluation", "banner_alert", "classify", "evaluate"]
