"""
Sistec Help-Desk Service
========================

Ticket lifecycle state machine and AI-assisted triage for an IT help desk.
"""

__version__ = "1.0.0"
