"""Grading use cases — correction lifecycle and key modification."""
