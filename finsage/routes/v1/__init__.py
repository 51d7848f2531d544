# finsage/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints, mounted under /api/v1 in ``finsage.main``.
"""

from . import conversations, credits, inquiries, internal, payments

__all__ = ["conversations", "credits", "inquiries", "internal", "payments"]
