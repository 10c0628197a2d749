# quantum_sim/engine/__init__.py

"""Scenario, forecast and similar-case pipelines."""
