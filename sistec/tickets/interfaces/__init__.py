"""
Tickets Interfaces Layer
========================

Contains:
- Controllers: FastAPI route handlers under /chamados
- Dependencies: acting user, access levels, service lookup
"""

from sistec.tickets.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
