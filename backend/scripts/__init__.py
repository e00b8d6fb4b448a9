"""Operational scripts for the Shifu backend."""
