"""
API Module for the Composition Advisor

This module provides the REST endpoints serving single-shot and streaming
composition analysis.
"""

from .main import app

__version__ = "1.0.0"
__all__ = ["app"]
