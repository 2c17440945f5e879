"""Python client for the election Vote API."""

from .client import VoteClient

__all__ = ['VoteClient']
