# quantum_sim/dashboard/__init__.py

"""Streamlit dashboard package."""
