"""Discretisation schemes."""

from .schemes import make_scheme, scheme_registry

__all__ = ["make_scheme", "scheme_registry"]
