"""SpecFlow backend: guided workflow data flow service."""

__version__ = "0.1.0"
