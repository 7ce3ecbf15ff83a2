"""Spotter command-line interface."""
