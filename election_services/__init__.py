"""Election voting services: vote API, shared models and Python client."""

__version__ = '1.0.0'
