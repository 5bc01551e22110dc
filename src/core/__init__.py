"""Core domain package for irc-manager.

Core contains matching, search, session and fetch orchestration logic without
any IRC-specific code, keeping the business logic portable.
"""
