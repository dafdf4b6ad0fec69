"""
Triage Module
=============

Bounded context for the AI triage and automated resolution of approved
tickets.

Responsibilities:
- Classify approved tickets (automate vs. assign to a human)
- Generate a solution for the ticket owner when automation is recommended
- Fall back to human handling on any AI failure
- Schedule triage out of band and recover pending runs on startup
"""
