"""
JEE AI Orchestrator Test Suite
==============================

Run all tests:
    pytest tests/ -v

Run with coverage:
    pytest tests/ --cov=jee_ai --cov-report=html

Security note: These tests use fake providers and mocked transports and
do not require real API keys.
"""
