"""KOLIA: food ordering and delivery marketplace API."""

__version__ = "1.0.0"
