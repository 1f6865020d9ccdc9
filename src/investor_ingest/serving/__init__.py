"""
Serving: FastAPI application for triggering and monitoring ingestion runs.
"""
