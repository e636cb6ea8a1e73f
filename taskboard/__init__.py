"""Taskboard domain: tasks, proof submission and manager review.

- Pydantic schemas and SQLAlchemy models for tasks and notifications
- Organization-scoped repositories with conditional updates
- Pure-function access rules and the proof review state machine
- The lifecycle engine and its FastAPI routers
"""
