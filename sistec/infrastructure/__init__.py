"""
Infrastructure Layer
=====================

Low-level technical concerns shared by every module:
- Database connection and session management
- Generative-AI (LLM) clients
"""
