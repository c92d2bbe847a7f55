"""Test package for Cognitrain.

This package contains unit tests for the timed core (timers, phase engine,
assessment stages and games), headless end-to-end simulations driven by a
fake clock, and smoke tests for the pygame UI. The UI tests run with
pygame's dummy video driver so no real window is opened. To run these tests,
execute ``pytest`` from the project root.
"""
