"""
Test suite for the Operations Intelligence Engine.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_atp_service.py -v
"""
