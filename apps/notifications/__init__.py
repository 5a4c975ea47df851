"""
Notifications app.

Fans a push notification out to every registered iOS device of a set of
users through the Apple Push Notification service.
"""

__version__ = '1.0.0'
