"""
Calendar sync server package.

This package provides a FastAPI application in front of a single-document
snapshot store so every device of the calendar app can save and load the
same application state, with three rotating backups for rollback.
"""
