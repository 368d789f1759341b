"""
Integration Tests Package

End-to-end checks of the filter -> classify -> validate -> detect -> pad
pipeline through the AspdEngine facade.

TEST AXIOMS:
=============
1. Determinism: same input + same calibration = identical output
2. Graceful degradation: a broken invariant is reported, never raised
3. Explicit failure: only malformed input and bad configuration raise
"""
