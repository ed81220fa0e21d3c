"""Core domain and persistence layer for the LASZ HR workforce backend."""

__version__ = "0.1.0"
