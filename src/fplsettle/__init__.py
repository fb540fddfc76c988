"""Scoring and prize settlement for weekly fantasy football pools."""

__version__ = "0.1.0"
