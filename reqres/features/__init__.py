"""
Optional response features
"""

from .cors import CORSConfig, cors_headers

__all__ = ["CORSConfig", "cors_headers"]
