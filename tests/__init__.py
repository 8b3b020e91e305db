"""
Test suite for percolator-sim

Contains:
- tests/unit/          : Unit tests for ledger, execution, tape, book, prints, hub, feed, API
"""
