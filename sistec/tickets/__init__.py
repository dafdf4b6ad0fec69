"""
Tickets Module
==============

Bounded context for the help-desk ticket lifecycle.

Responsibilities:
- Open tickets and derive their titles and priorities
- Enforce the status transition graph, one transaction per transition
- Keep the append-only status history and the audit notes
- Record owner feedback on AI solutions and analyst resolution reports
"""
