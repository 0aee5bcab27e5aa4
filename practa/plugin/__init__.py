"""
Practa Plugin Distribution - Validation and packaging of plugins.

This module handles:
- Metadata parsing, writing and version bumps
- Structural validation of component and metadata
- Asset auditing (declared vs. physical, size and type limits)
- Dynamic loading of a plugin's entry module
- Archive packaging, download and marketplace submission
"""

__all__ = []
