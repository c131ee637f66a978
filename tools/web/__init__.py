"""Web retrieval tools: provider search, page text extraction and URL normalization."""

from .page_fetcher import PageFetcher
from .search_client import WebSearchClient
from .url_utils import is_http_url, normalize_url

__all__ = ["PageFetcher", "WebSearchClient", "is_http_url", "normalize_url"]
