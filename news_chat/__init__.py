"""
News Chat

A retrieval-augmented chat service over recent news: ingests articles from
RSS/Atom feeds (with an HTML fallback), embeds them, stores them in a vector
index and answers questions within TTL-bounded conversation sessions.
"""

__version__ = "0.1.0"
