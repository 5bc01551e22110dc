"""IRC adapters for irc-manager.

Adapters own the `irc` library and translate its events into core
notifications, so nothing in core imports it.
"""
