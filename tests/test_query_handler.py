"""
Tests for the Query Handler

Tests cover limit parsing from user input and the shape of search responses.
"""

from datetime import datetime, timezone

import pytest

from feedsearch.models import Article
from feedsearch.query.handler import QueryHandler


@pytest.fixture
def handler(repository):
    repository.upsert_many([
        Article.from_feed_item(
            link=f"https://gossip.example/{i}",
            title=f"Red carpet moment {i}",
            creator="Desk",
            pub_date=datetime(2024, 6, i + 1, tzinfo=timezone.utc),
            description="Stars arrive at the premiere",
        )
        for i in range(12)
    ])
    return QueryHandler(repository, default_limit=10)


class TestParseLimit:
    """Test limit parsing."""

    @pytest.mark.parametrize("raw, expected", [(None, 10), ("", 10), ("5", 5), (" 7 ", 7), (3, 3)])
    def test_valid(self, handler, raw, expected):
        assert handler.parse_limit(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "5.5", "1e3", True])
    def test_invalid(self, handler, raw):
        with pytest.raises(ValueError):
            handler.parse_limit(raw)


class TestSearch:
    """Test search responses."""

    def test_response_shape(self, handler):
        response = handler.search("red carpet premiere", limit="3")

        assert response['query'] == "red carpet premiere"
        assert response['count'] == 3
        first = response['data'][0]
        assert set(first) >= {'id', 'title', 'link', 'creator', 'pub_date', 'distance'}
        assert isinstance(first['pub_date'], str)

    def test_default_limit(self, handler):
        assert handler.search("red carpet")['count'] == 10

    def test_listing_when_query_missing(self, handler):
        response = handler.search(None, limit=5)

        assert response['count'] == 5
        assert all(item['distance'] == 0.0 for item in response['data'])

    @pytest.mark.parametrize("limit", ["0", "101", "-3", "ten"])
    def test_out_of_range_limits(self, handler, limit):
        with pytest.raises(ValueError):
            handler.search("red carpet", limit=limit)
