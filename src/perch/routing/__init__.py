"""Routing — compiled path patterns, routes, and recursive routers.

Routes are registered during setup; the router tree freezes on first
resolution and is read-only afterwards.
"""
