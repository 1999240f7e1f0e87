"""Nexus Cards: digital business cards with NFC tags, contacts and analytics."""
