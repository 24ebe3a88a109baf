"""Cluster dial controller application."""
