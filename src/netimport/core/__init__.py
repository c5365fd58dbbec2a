"""Loader core: configuration, domain types, contracts and services."""
