"""LASZ HR API: billing webhooks, sign-in and the live shift rota."""

__version__ = "0.1.0"
