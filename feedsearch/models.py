"""
Article Data Model

Defines the canonical article record and its fixed-schema vector-store
metadata. Metadata keys match the persisted record contract read by other
tools (camelCase, timestamps as ISO-8601 strings).
"""

import hashlib
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict, Any, Optional


def article_id_for_link(link: str) -> str:
    """
    Derive the stable article identifier from its link.

    Args:
        link: Canonical article link

    Returns:
        MD5 hexadecimal digest of the link
    """
    return hashlib.md5(link.encode('utf-8')).hexdigest()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is present."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ArticleMetadata:
    """Fixed-schema metadata stored next to each embedding."""
    title: str
    link: str
    creator: str
    pub_date: str
    description: str
    content_encoded: str
    thumbnail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to primitive scalars; the thumbnail key is omitted when absent."""
        data = {
            'title': self.title,
            'link': self.link,
            'creator': self.creator,
            'pubDate': self.pub_date,
            'description': self.description,
            'contentEncoded': self.content_encoded,
        }
        if self.thumbnail:
            data['thumbnail'] = self.thumbnail
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ArticleMetadata':
        """Build metadata from a stored metadata mapping."""
        return cls(
            title=str(data.get('title') or ''),
            link=str(data.get('link') or ''),
            creator=str(data.get('creator') or ''),
            pub_date=str(data.get('pubDate') or ''),
            description=str(data.get('description') or ''),
            content_encoded=str(data.get('contentEncoded') or ''),
            thumbnail=data.get('thumbnail') or None,
        )


@dataclass
class Article:
    """
    A single syndicated article.

    ``distance`` is only populated on search results; listing results carry 0.0.
    """
    id: str
    title: str
    link: str
    creator: str
    pub_date: datetime
    description: str = ""
    body_html: str = ""
    thumbnail: Optional[str] = None
    distance: Optional[float] = None

    @classmethod
    def from_feed_item(
        cls,
        link: str,
        title: str = "",
        creator: str = "",
        pub_date: Optional[datetime] = None,
        description: str = "",
        body_html: str = "",
        thumbnail: Optional[str] = None
    ) -> 'Article':
        """Create a new article whose id is derived from its link."""
        return cls(
            id=article_id_for_link(link),
            title=title,
            link=link,
            creator=creator,
            pub_date=pub_date or datetime.now(timezone.utc),
            description=description,
            body_html=body_html,
            thumbnail=thumbnail,
        )

    def embedding_text(self) -> str:
        """Text the embedding is derived from (HTML is stripped by the embedder)."""
        return f"{self.title} {self.description} {self.body_html}"

    def to_metadata(self) -> ArticleMetadata:
        """Map the article to its vector-store metadata."""
        return ArticleMetadata(
            title=self.title,
            link=self.link,
            creator=self.creator,
            pub_date=self.pub_date.isoformat(),
            description=self.description,
            content_encoded=self.body_html,
            thumbnail=self.thumbnail,
        )

    @classmethod
    def from_metadata(
        cls,
        article_id: str,
        metadata: ArticleMetadata,
        distance: Optional[float] = None
    ) -> 'Article':
        """Rebuild an article from stored metadata."""
        try:
            pub_date = parse_timestamp(metadata.pub_date)
        except ValueError:
            pub_date = datetime.fromtimestamp(0, tz=timezone.utc)

        return cls(
            id=article_id,
            title=metadata.title,
            link=metadata.link,
            creator=metadata.creator,
            pub_date=pub_date,
            description=metadata.description,
            body_html=metadata.content_encoded,
            thumbnail=metadata.thumbnail,
            distance=distance,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data['pub_date'] = self.pub_date.isoformat()
        return data
