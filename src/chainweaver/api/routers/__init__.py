"""Relay routers."""
