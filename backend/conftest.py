"""Pytest bootstrap for backend test runs.

Settings are read at import time, so the testing environment has to be in
place before any `kr_portal` module is imported.
"""
import os

os.environ.setdefault("TESTING", "true")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
