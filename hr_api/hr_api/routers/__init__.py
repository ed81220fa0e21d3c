"""API router modules for the LASZ HR backend."""

from __future__ import annotations

from hr_api.routers import auth, billing, company, health, internal, rota, shifts

__all__ = [
    "auth",
    "billing",
    "company",
    "health",
    "internal",
    "rota",
    "shifts",
]
