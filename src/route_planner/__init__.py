"""Delivery route planning: stop grouping, distance matrices and TSP heuristics."""

__version__ = "0.1.0"
