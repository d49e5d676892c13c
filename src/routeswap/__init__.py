"""Routeswap - client for the Mixin route swap API."""

__version__ = "0.1.0"
