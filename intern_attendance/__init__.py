"""Internship attendance service."""
