"""HTTP bridge between the scene editor and the on-disk mirror."""

__version__ = "0.1.1"
