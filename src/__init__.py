"""
Entity Fusion Engine - correlation and fusion of multi-source OSINT entities.

This package contains:
- fusion_engine: Correlation scoring, grouping and confidence fusion
- shared: Shared utilities and configuration
"""

__version__ = "0.1.0"
