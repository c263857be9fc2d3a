"""Registration and payment settlement app."""
