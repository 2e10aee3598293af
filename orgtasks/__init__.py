"""Multi-tenant task management API backed by Firestore."""

__version__ = "1.0.0"
