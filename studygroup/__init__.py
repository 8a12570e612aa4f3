"""Study Group: classroom document sharing and AI assistant API."""

__version__ = "0.1.0"
