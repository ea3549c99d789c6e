"""
GraphLens - interactive Neo4j query results as a node-link diagram.
"""

__version__ = "0.1.0"
