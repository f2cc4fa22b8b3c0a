"""Helpers for testing code that reports to Testomat.io."""
