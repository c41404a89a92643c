"""Drainr quote service: pricing, publishing and public links for pipe relining quotes."""

from .app import create_app

__version__ = '1.0.0'

__all__ = ['create_app']
