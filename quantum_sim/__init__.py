# quantum_sim/__init__.py

"""Quantum Scenario Simulator: AI business scenarios on BigQuery."""

__version__ = "1.0.0"
