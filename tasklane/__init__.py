"""
Tasklane - simulated-work task tracker.
"""

__version__ = "1.0.0"
