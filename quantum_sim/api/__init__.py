# quantum_sim/api/__init__.py

"""REST API package."""
