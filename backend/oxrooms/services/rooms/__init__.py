"""Room domain services: rules, the room store and expiry.

This package contains the game logic and shared room state that should be
imported by HTTP routes, socket handlers and clients, keeping transport
concerns separated from the core protocol.
"""
