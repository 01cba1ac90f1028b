"""Local anime library catalog: index, filter, group and browse media folders."""

__version__ = "0.1.0"
