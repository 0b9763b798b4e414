"""Obreon Chronicle - campaign calendar, weather and travel journal for the Obreon setting."""

__version__ = "0.1.0"
