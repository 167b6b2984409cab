"""Prompt Mix Library — a local gallery of image prompt mixes."""

__version__ = "0.1.0"
