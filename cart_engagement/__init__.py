"""Cart lifecycle and engagement service"""

__version__ = "1.0.0"
