"""Notification dispatch service: in-app, push, email and SMS delivery."""
