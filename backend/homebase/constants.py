"""
Stable application constants.

Operational parameters that vary per environment (timeouts, model,
history window) live in config.py.
"""

# --- API metadata ---
API_TITLE = "HomeBase AI API"
API_VERSION = "0.1.0"
API_DESCRIPTION = (
    "Conversational assistant for homeowners and home service providers. "
    "Diagnoses home problems, creates service requests with cost estimates "
    "and matches trusted providers."
)
