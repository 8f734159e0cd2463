"""jorup - release manager and supervisor for jormungandr nodes."""

__version__ = "0.7.0"
