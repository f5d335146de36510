"""
JSON Echo

Mock API server driven by a declarative JSON configuration of routes and
canned responses.
"""

__version__ = '0.1.0'
