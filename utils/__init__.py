"""Helpers shared by the route modules: decorators, validation, uploads, session and lookup utilities."""
