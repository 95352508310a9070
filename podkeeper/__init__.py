"""podkeeper: podcast feed sync and download orchestration."""

__version__ = "0.1.0"
