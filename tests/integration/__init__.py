"""Integration tests for ScholarForge.

These tests verify end-to-end functionality including:
- Complete generation pipeline runs with a scripted model
- Literature fallbacks and phase failures
- Background job submission and cancellation
- Revision processing
"""
