"""
Unit tests: domain rules, services over in-memory storage, messaging, settings.
"""
