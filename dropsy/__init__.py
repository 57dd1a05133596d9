"""dropsy - one-way directory sync over SSH"""

__version__ = "0.3.0"
