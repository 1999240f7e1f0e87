"""
Use cases for the Nexus Cards API.

Each service orchestrates repositories and integrations to apply the business
rules (tier limits, slug selection, NFC resolution, billing state, etc.).

Routers call these services instead of touching sessions or models directly.
"""
