"""Shifu pronunciation practice backend."""
