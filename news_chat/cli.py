"""
Command-Line Interface for News Chat

Provides CLI commands for:
- Article ingestion from news feeds
- Question answering within sessions
- Session history inspection and clearing
- System statistics
- Running the HTTP/WebSocket API server
"""

import sys
import argparse
import logging
import uuid

import uvicorn

from .config import get_config
from .system import NewsChatSystem


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def _build_system() -> NewsChatSystem:
    system = NewsChatSystem()
    system.initialize()
    return system


def _has_shared_history(system: NewsChatSystem) -> bool:
    """In-memory history lives only as long as this process."""
    return system.config.history_backend != 'memory'


def _require_shared_history(system: NewsChatSystem):
    if not _has_shared_history(system):
        print("✗ Error: Session history does not persist between CLI runs with the memory backend")
        print("  Set HISTORY_BACKEND=redis to use session commands")
        sys.exit(1)


def cmd_ingest(args):
    """Handle the ingest command."""
    system = _build_system()

    sources = args.source or None
    print(f"Ingesting articles from {len(sources or system.config.sources)} source(s)")

    count = system.ingest_articles(
        sources=sources,
        limit=args.limit,
        use_batch=args.batch,
        show_progress=True
    )

    print(f"\n{'='*60}")
    print(f"✓ Ingested {count} articles")
    print(f"{'='*60}")


def cmd_ask(args):
    """Handle the ask command."""
    system = _build_system()
    if args.session:
        _require_shared_history(system)
    session_id = args.session or str(uuid.uuid4())

    print(f"Question: {args.question}")
    print()

    result = system.query(session_id, args.question)

    print("Answer:")
    print(f"{result.response}")
    print()

    if not args.no_sources and result.sources:
        print("Sources:")
        for i, source in enumerate(result.sources, 1):
            print(f"  [{i}] {source['title']}")
            print(f"      {source['url']}")
        print()

    if _has_shared_history(system):
        print(f"Session ID: {session_id}")
        print("(Use this session ID for follow-up questions)")


def cmd_history(args):
    """Handle the history command."""
    system = NewsChatSystem()
    _require_shared_history(system)

    messages = system.get_history(args.session)

    if not messages:
        print("No history found.")
        return

    print(f"Found {len(messages)} message(s):\n")

    for message in messages:
        print(f"[{message.role}] {message.content}")
        print()


def cmd_clear(args):
    """Handle the clear command."""
    system = NewsChatSystem()
    _require_shared_history(system)

    if system.clear_history(args.session):
        print(f"✓ Cleared session: {args.session}")


def cmd_stats(args):
    """Handle the stats command."""
    system = _build_system()

    stats = system.get_stats()

    print("="*60)
    print("System Statistics")
    print("="*60)
    print(f"Collection: {stats['collection_name']}")
    print(f"Vector Backend: {stats['vector_backend']}")
    print(f"Total Vectors: {stats['total_vectors']}")
    print(f"Embedding Model: {stats['embedding_model']}")
    print("="*60)


def cmd_serve(args):
    """Handle the serve command."""
    from .api.app import create_app

    config = get_config()
    host = args.host or config.api_host
    port = args.port or config.api_port

    print(f"Starting server on {host}:{port}")
    uvicorn.run(create_app(config=config), host=host, port=port)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='News Chat - Conversational question answering over recent news',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ingest articles from the configured feeds
  news-chat ingest

  # Ingest at most 10 articles from one feed using batched embeddings
  news-chat ingest --source https://feeds.bbci.co.uk/news/rss.xml --limit 10 --batch

  # Ask a question
  news-chat ask "What happened in the markets today?"

  # Continue a conversation (requires HISTORY_BACKEND=redis)
  news-chat ask "And yesterday?" --session <session-id>

  # Show or clear a session's history (requires HISTORY_BACKEND=redis)
  news-chat history <session-id>
  news-chat clear <session-id>

  # Run the API server
  news-chat serve --port 5000
        """
    )

    # Global arguments
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Ingest command
    ingest_parser = subparsers.add_parser(
        'ingest',
        help='Ingest articles from news feeds'
    )
    ingest_parser.add_argument(
        '--source',
        action='append',
        help='Feed URL to ingest (repeatable; default: configured sources)'
    )
    ingest_parser.add_argument(
        '--limit',
        type=int,
        help='Maximum number of articles (default: INGEST_LIMIT)'
    )
    ingest_parser.add_argument(
        '--batch',
        action='store_true',
        help='Embed articles with batched requests'
    )
    ingest_parser.set_defaults(func=cmd_ingest)

    # Ask command
    ask_parser = subparsers.add_parser(
        'ask',
        help='Ask a question and get an AI-generated answer'
    )
    ask_parser.add_argument(
        'question',
        help='Question to ask'
    )
    ask_parser.add_argument(
        '--session',
        help='Session ID for multi-turn conversation'
    )
    ask_parser.add_argument(
        '--no-sources',
        action='store_true',
        help='Disable source citations'
    )
    ask_parser.set_defaults(func=cmd_ask)

    # History command
    history_parser = subparsers.add_parser(
        'history',
        help='Show the messages of a session'
    )
    history_parser.add_argument(
        'session',
        help='Session ID'
    )
    history_parser.set_defaults(func=cmd_history)

    # Clear command
    clear_parser = subparsers.add_parser(
        'clear',
        help='Delete the history of a session'
    )
    clear_parser.add_argument(
        'session',
        help='Session ID'
    )
    clear_parser.set_defaults(func=cmd_clear)

    # Stats command
    stats_parser = subparsers.add_parser(
        'stats',
        help='Display system statistics'
    )
    stats_parser.set_defaults(func=cmd_stats)

    # Serve command
    serve_parser = subparsers.add_parser(
        'serve',
        help='Run the HTTP and WebSocket API server'
    )
    serve_parser.add_argument(
        '--host',
        help='Bind address (default: API_HOST)'
    )
    serve_parser.add_argument(
        '--port',
        type=int,
        help='Port (default: PORT)'
    )
    serve_parser.set_defaults(func=cmd_serve)

    # Parse arguments
    args = parser.parse_args()

    # Setup logging
    setup_logging(args.verbose)

    # Execute command
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
