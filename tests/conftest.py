# tests/conftest.py
import asyncio
import os
import sys

# Settings are read at import time, so test defaults must be in place first.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-test-suite-only")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("IDENTITY_PROVIDER_URL", "https://identity.test")
os.environ.setdefault("IDENTITY_PROVIDER_API_KEY", "test-anon-key")
os.environ.setdefault("GENERATIVE_API_URL", "https://generative.test")
os.environ.setdefault("GENERATIVE_API_KEY", "test-generative-key")
os.environ.setdefault("GENERATIVE_MODEL", "gemini-pro")

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
