"""Reusable building blocks shared by the domain packages.

Each module is a self-contained pattern: an organization-scoped async
repository with compare-and-swap updates, and pure-function rule results.
"""
