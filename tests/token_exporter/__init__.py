"""
Tests for the Token Exporter.

This package contains tests for:
- Address normalization and chain resolution
- Output store layout and atomic writes
- Batch pipeline scheduling and failure isolation
- Feed client and live-verify provider against local HTTP servers
- Configuration and CLI entry point
"""
