"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the market system.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Value and stake bookkeeping invariants
2. atomicity.py - All-or-nothing operation semantics
3. idempotency.py - Repeated settlement, claim and withdrawal handling
4. determinism.py - Reproducible behavior
5. temporal.py - Staking windows, expiry and time ordering

These tests use hypothesis for property-based testing.
"""
