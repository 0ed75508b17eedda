"""Directory statistics: an item tree with totalled sizes, directory enumeration, formatting and translations."""

__version__ = "0.1.0"