"""Prediction-quiz scoring and resolution engine for bracket tournaments."""

__version__ = "0.1.0"
