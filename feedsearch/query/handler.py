"""
Query Handler

Search query surface: validates the result limit, runs the repository search
and shapes the response as ``{query, count, data}``.
"""

import logging
from typing import Dict, Any, Optional, Union

from ..storage.article_repository import ArticleRepository

logger = logging.getLogger(__name__)


class QueryHandler:
    """Handles free-text search requests over the article corpus."""

    def __init__(self, repository: ArticleRepository, default_limit: int = 10):
        """
        Initialize the query handler.

        Args:
            repository: Article repository
            default_limit: Limit used when the request carries none
        """
        self.repository = repository
        self.default_limit = default_limit

    def parse_limit(self, limit: Optional[Union[int, str]]) -> int:
        """
        Parse a limit coming from user input.

        Raises:
            ValueError: If the limit is not a positive integer
        """
        if limit is None or limit == "":
            return self.default_limit
        if isinstance(limit, bool):
            raise ValueError(f"Invalid limit: {limit!r}")
        if isinstance(limit, str):
            try:
                limit = int(limit.strip(), 10)
            except ValueError:
                raise ValueError(f"Invalid limit: {limit!r}")
        return limit

    def search(self, query: Optional[str] = None, limit: Optional[Union[int, str]] = None) -> Dict[str, Any]:
        """
        Search articles.

        Args:
            query: Free-text query; blank or None lists articles unranked
            limit: Maximum number of results

        Returns:
            Dictionary with the query, the result count and article dicts

        Raises:
            ValueError: If the limit is malformed or out of range
        """
        parsed_limit = self.parse_limit(limit)
        articles = self.repository.search(query, parsed_limit)

        return {
            'query': query,
            'count': len(articles),
            'data': [article.to_dict() for article in articles],
        }
