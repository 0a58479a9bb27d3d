"""
rmlpub: publish mapped RDF datasets and register them in an activity feed.

Pipeline: Convert -> Store -> Resolve location -> Build delta -> Merge into feed.
"""

__version__ = "0.1.0"
