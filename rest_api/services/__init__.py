"""
Service layer: domain services for chats, messages and notifications.
"""
