"""
Core utilities shared across the Nexus Cards API: configuration, logging,
errors, hashing, tokens, e-mail and rate limiting.
"""
