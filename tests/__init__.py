"""
Test suite for covercore

Contains:
- tests/unit/          : Unit tests for individual modules
"""
