"""In-memory publish/subscribe hub streaming events over Server-Sent Events."""

__version__ = "0.1.0"
