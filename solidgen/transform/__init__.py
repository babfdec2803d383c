"""Whole-unit transformation: planning, rendering and edit application."""
