"""Concrete oracle backends and the provider registry."""
