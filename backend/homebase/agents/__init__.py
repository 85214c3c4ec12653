"""
HomeBase AI turn engine.

This package contains the LangGraph-based turn controller, the role-scoped
tool registry and handlers, the tool executor and the fallback reply
synthesizer.
"""
