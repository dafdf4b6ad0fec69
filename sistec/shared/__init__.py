"""
Shared Kernel Module
====================

Generic infrastructure used by both bounded contexts (Tickets and Triage):
structured logging, HTTP middleware and the response envelope.

DO NOT add ticket lifecycle or triage rules to the shared kernel.
"""
