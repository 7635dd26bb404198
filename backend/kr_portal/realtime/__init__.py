"""
Real-time module: change-feed subscriptions, notification relay and the
Socket.IO dashboard server.
"""
