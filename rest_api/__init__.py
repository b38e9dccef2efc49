"""
REST API: chats, chat invites, chat messages and notifications.
"""
