"""Guestbook message board service."""
