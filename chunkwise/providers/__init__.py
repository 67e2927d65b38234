"""Concrete adapters for every interface in :mod:`chunkwise.interfaces`."""
