"""
Serving — FastAPI application exposing ingest, memories and search.
"""
