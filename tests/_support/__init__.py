"""
Test support utilities for tessera tests.

Entity declarations and test doubles that are imported directly rather
than injected as pytest fixtures (test modules need the classes themselves
to build ``QuerySpec`` objects).
"""
