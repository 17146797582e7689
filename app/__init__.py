"""Notification service application package."""
