"""Integration tests for the election store.

These tests run the store backends against a real PostgreSQL database:

- Vote recording and rejection paths
- Cascading deletes
- Concurrent duplicate submissions and tally consistency

Tests skip when PostgreSQL is not reachable.
"""
