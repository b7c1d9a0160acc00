"""Logging and metrics for ordertrack."""
