"""
Command-Line Interface for Feed Semantic Search

Provides CLI commands for:
- Seeding from a list of websites
- Feed discovery for a single website
- Ingesting a single feed
- Semantic search
- System statistics
"""

import sys
import argparse
import logging
from pathlib import Path

from .main_pipeline import FeedSearchSystem


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_system(args, show_progress: bool = False) -> FeedSearchSystem:
    """Build and start the system for a command."""
    system = FeedSearchSystem(show_progress=show_progress)
    system.startup(auto_seed=not args.no_auto_seed and args.command == 'search')
    return system


def cmd_seed(args):
    """Handle the seed command."""
    system = FeedSearchSystem(show_progress=True)
    file_path = args.file or system.config.default_seed_file

    if not Path(file_path).exists():
        print(f"✗ Error: Website file not found: {file_path}")
        sys.exit(1)

    system.startup(auto_seed=False)

    print(f"Seeding RSS feeds from websites in: {file_path}")
    report = system.seed(file_path)

    print(f"\n{'='*60}")
    print("Seeding Summary:")
    print(f"  Websites: {report.total_sites}")
    print(f"  Feeds found: {report.total_feeds}")
    print(f"  Feeds failed: {report.failed_feeds}")
    print(f"  Articles stored: {report.articles_stored}")
    print(f"  Processing time: {report.processing_time:.2f}s")
    print(f"{'='*60}")

    if report.failed_feeds > 0:
        print("\nFailed feeds:")
        for site in report.sites:
            for feed_url in site.failed_feeds:
                print(f"  - {feed_url}")


def cmd_discover(args):
    """Handle the discover command."""
    system = FeedSearchSystem()
    feeds = system.discover(args.url)

    if not feeds:
        print(f"No RSS feeds found for {args.url}")
        return

    print(f"Found {len(feeds)} RSS feed(s) for {args.url}:")
    for feed_url in feeds:
        print(f"  - {feed_url}")


def cmd_ingest_feed(args):
    """Handle the ingest-feed command."""
    system = create_system(args)

    print(f"Ingesting RSS feed: {args.url}")
    report = system.ingest_feed(args.url)

    print(f"✓ Processed {report.items_seen} items")
    print(f"  Stored: {report.stored}")
    print(f"  Already known: {report.skipped_existing}")
    print(f"  Without link: {report.skipped_no_link}")
    print(f"  Failed: {report.failed}")


def cmd_search(args):
    """Handle the search command."""
    system = create_system(args)

    query = args.query or ""
    if query:
        print(f"Searching for: {query}")
    else:
        print("Listing articles")
    print()

    try:
        response = system.search(query, args.limit)
    except ValueError as e:
        print(f"✗ Error: {e}")
        sys.exit(1)

    if not response['data']:
        print("No results found.")
        return

    print(f"Found {response['count']} results:\n")

    for i, article in enumerate(response['data'], 1):
        print(f"[{i}] {article['title']}")
        print(f"    URL: {article['link']}")
        print(f"    Published: {article['pub_date']}")
        print(f"    Distance: {article['distance']:.4f}")
        print()


def cmd_stats(args):
    """Handle the stats command."""
    system = create_system(args)

    stats = system.get_stats()
    vs_stats = stats['vector_store_stats']

    print("="*60)
    print("System Statistics")
    print("="*60)
    print(f"Total Articles: {stats['total_articles']}")
    print(f"Embedding Model: {stats['embedding_model']} (ready: {stats['model_ready']})")
    print()

    print("Vector Store:")
    print(f"  Backend: {vs_stats.get('backend', 'N/A')}")
    print(f"  Collection: {vs_stats.get('collection', 'N/A')}")
    print(f"  Available: {vs_stats.get('available', False)}")
    print(f"  Dimension: {vs_stats.get('dimension', 'N/A')}")
    print("="*60)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description='Feed Semantic Search - RSS discovery, ingestion and semantic search',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Seed from a list of websites
  python -m feedsearch.cli seed --file default_seed_websites.txt

  # Discover feeds for a website
  python -m feedsearch.cli discover https://example.com

  # Ingest a single feed
  python -m feedsearch.cli ingest-feed https://example.com/feed.xml

  # Search the corpus
  python -m feedsearch.cli search "celebrity wedding" --limit 5

  # View statistics
  python -m feedsearch.cli stats
        """
    )

    # Global arguments
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--no-auto-seed',
        action='store_true',
        help='Do not seed automatically when the collection is empty'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Seed command
    seed_parser = subparsers.add_parser(
        'seed',
        help='Fetch and store RSS feed data from websites'
    )
    seed_parser.add_argument(
        '--file', '--seed-website-file',
        dest='file',
        help='File containing website URLs (one per line)'
    )
    seed_parser.set_defaults(func=cmd_seed)

    # Discover command
    discover_parser = subparsers.add_parser(
        'discover',
        help='Discover RSS feeds for a website'
    )
    discover_parser.add_argument(
        'url',
        help='Website homepage URL'
    )
    discover_parser.set_defaults(func=cmd_discover)

    # Ingest feed command
    ingest_parser = subparsers.add_parser(
        'ingest-feed',
        help='Ingest a single RSS feed'
    )
    ingest_parser.add_argument(
        'url',
        help='RSS feed URL'
    )
    ingest_parser.set_defaults(func=cmd_ingest_feed)

    # Search command
    search_parser = subparsers.add_parser(
        'search',
        help='Search for relevant articles'
    )
    search_parser.add_argument(
        'query',
        nargs='?',
        default='',
        help='Search query (omit to list articles)'
    )
    search_parser.add_argument(
        '--limit',
        default=None,
        help='Number of results to return (default: 10)'
    )
    search_parser.set_defaults(func=cmd_search)

    # Stats command
    stats_parser = subparsers.add_parser(
        'stats',
        help='Display system statistics'
    )
    stats_parser.set_defaults(func=cmd_stats)

    return parser


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\n✗ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
