"""Retrieval gateway and search results."""

from mnemo.retrieval.gateway import RetrievalGateway, RetrievedContext
from mnemo.retrieval.results import SearchResult

__all__ = ["RetrievalGateway", "RetrievedContext", "SearchResult"]
