"""Clients for the object store, document store and relational target."""
