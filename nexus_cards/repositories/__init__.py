"""
Persistence adapters.

One repository class per aggregate. Each call opens its own session and
returns detached entities; services never touch the session directly.
"""
