"""Utility modules for logging and common helpers."""

from requestlens.utils.logging import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
