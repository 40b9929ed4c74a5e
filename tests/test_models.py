"""
Tests for the Article data model
"""

import hashlib
from datetime import datetime, timezone

from feedsearch.models import Article, ArticleMetadata, article_id_for_link, parse_timestamp


class TestArticleId:
    """Test identifier derivation."""

    def test_md5_of_link(self):
        expected = hashlib.md5(b"https://a.example/1").hexdigest()
        assert article_id_for_link("https://a.example/1") == expected

    def test_stable_and_distinct(self):
        assert article_id_for_link("https://a.example/1") == article_id_for_link("https://a.example/1")
        assert article_id_for_link("https://a.example/1") != article_id_for_link("https://a.example/2")


class TestMetadata:
    """Test the persisted metadata mapping."""

    def test_roundtrip_keeps_fields(self):
        article = Article.from_feed_item(
            link="https://a.example/1",
            title="Title",
            creator="Author",
            pub_date=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            description="Desc",
            body_html="<p>Body</p>",
            thumbnail="https://img.example/1.png",
        )

        restored = Article.from_metadata(article.id, ArticleMetadata.from_dict(article.to_metadata().to_dict()))

        assert restored == article

    def test_unparseable_date_falls_back_to_epoch(self):
        metadata = ArticleMetadata.from_dict({'link': "https://a.example/1", 'pubDate': "yesterday"})

        article = Article.from_metadata("x", metadata)

        assert article.pub_date == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_naive_timestamp_assumed_utc(self):
        assert parse_timestamp("2024-01-02T03:04:05").tzinfo == timezone.utc

    def test_embedding_text(self):
        article = Article.from_feed_item(
            link="https://a.example/1", title="T", description="D", body_html="B"
        )

        assert article.embedding_text() == "T D B"

    def test_to_dict_serializes_date(self):
        article = Article.from_feed_item(
            link="https://a.example/1",
            pub_date=datetime(2024, 1, 2, tzinfo=timezone.utc)
        )

        assert article.to_dict()['pub_date'] == "2024-01-02T00:00:00+00:00"
