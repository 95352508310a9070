"""CLI commands for podcast management.

Provides commands for:
- Subscribing to feeds (single URL, several URLs, or a file of URLs)
- Refreshing feeds and downloading queued episodes
- Reconciling downloads against the disk
- Per-episode and per-podcast state changes
- Viewing status, statistics and settings
"""

import argparse
import logging
import sys
from dataclasses import fields

from ..argparse_shared import add_dry_run_argument, add_log_level_argument, get_base_parser
from ..config import Config
from ..db.factory import create_repository_from_config
from ..exceptions import FetchError, NotFoundError, ParseError, PodcastAlreadyExistsError
from ..podcast.downloader import EpisodeDownloader
from ..podcast.episode_service import EpisodeService
from ..podcast.feed_parser import FeedParser
from ..podcast.feed_sync import FeedSyncService
from ..podcast.job_lock import DOWNLOAD_JOB_NAME, JobLock
from ..podcast.reconciler import DiskReconciler
from ..podcast.settings import SyncSettings

logger = logging.getLogger(__name__)


def _feed_sync_service(repository, config: Config) -> FeedSyncService:
    return FeedSyncService(
        repository=repository,
        feed_parser=FeedParser.from_config(config),
    )


def _print_bulk_result(result):
    print("\nImport complete:")
    print(f"  Added: {result['added']}")
    print(f"  Already subscribed: {result['already_exists']}")
    print(f"  Failed: {result['failed']}")
    for entry in result["results"]:
        if entry["error"]:
            print(f"  - {entry['feed_url']}: {entry['error']}")
    if result["sync"]:
        print(f"  New episodes: {result['sync']['new_episodes']}")


def add_podcast(args, config: Config):
    """
    Subscribe to one or more feed URLs.

    A single URL is subscribed and refreshed immediately; several URLs are
    fetched concurrently and refreshed together once all fetches finish.
    Exits with status 1 if a single subscription is rejected or its feed
    cannot be fetched.
    """
    repository = create_repository_from_config(config)

    try:
        sync_service = _feed_sync_service(repository, config)

        if len(args.urls) > 1:
            _print_bulk_result(sync_service.add_podcasts_from_urls(args.urls))
            return

        url = args.urls[0]
        logger.info(f"Adding podcast from: {url}")
        try:
            result = sync_service.subscribe(url)
        except PodcastAlreadyExistsError as e:
            print(f"Error: {e}")
            sys.exit(1)
        except (FetchError, ParseError) as e:
            print(f"Error: could not fetch feed: {e}")
            sys.exit(1)

        print(f"\nAdded podcast: {result['title']}")
        print(f"  ID: {result['podcast_id']}")
        print(f"  New episodes: {result['new_episodes']} ({result['queued']} queued)")

    finally:
        repository.close()


def import_feeds(args, config: Config):
    """
    Subscribe to every feed URL listed in a text file, one per line.

    Blank lines and lines starting with `#` are ignored.
    """
    with open(args.file, encoding="utf-8") as f:
        urls = [
            line.strip()
            for line in f
            if line.strip() and not line.strip().startswith("#")
        ]

    print(f"\nFound {len(urls)} feed URLs in {args.file}")

    if args.dry_run:
        print("\n[DRY RUN] Would import the following feeds:")
        for url in urls:
            print(f"  - {url}")
        return

    repository = create_repository_from_config(config)
    try:
        sync_service = _feed_sync_service(repository, config)
        _print_bulk_result(sync_service.add_podcasts_from_urls(urls))
    finally:
        repository.close()


def sync_feeds(args, config: Config):
    """Refresh podcast feeds to record new episodes."""
    repository = create_repository_from_config(config)

    try:
        sync_service = _feed_sync_service(repository, config)

        if args.podcast_id:
            logger.info(f"Syncing podcast: {args.podcast_id}")
            result = sync_service.sync_podcast(args.podcast_id)

            if result["error"]:
                print(f"Error: {result['error']}")
                sys.exit(1)

            print("\nSync complete:")
            print(f"  New episodes: {result['new_episodes']}")
            print(f"  Queued for download: {result['queued']}")
        else:
            logger.info("Syncing all podcasts")
            result = sync_service.sync_all_podcasts()

            print("\nSync complete:")
            print(f"  Podcasts synced: {result['synced']}")
            print(f"  Podcasts failed: {result['failed']}")
            print(f"  New episodes: {result['new_episodes']}")

    finally:
        repository.close()


def download_episodes(args, config: Config):
    """
    Download queued episodes, or a single episode with `--episode-id`.

    Prints a summary and lists up to the first 10 failures. A run that finds
    the download lock held prints a notice and exits normally.
    """
    repository = create_repository_from_config(config)

    downloader = None
    try:
        downloader = EpisodeDownloader.from_config(config, repository)

        if args.episode_id:
            service = EpisodeService(repository, downloader)
            try:
                result = service.download_episode_now(args.episode_id)
            except NotFoundError as e:
                print(f"Error: {e}")
                sys.exit(1)

            if not result.success:
                print(f"Download failed: {result.error}")
                sys.exit(1)
            print(f"\nDownloaded to {result.local_path}")
            return

        result = downloader.download_pending()

        if result["locked"]:
            print("\nAnother download run is in progress; nothing to do.")
            return

        print("\nDownload complete:")
        print(f"  Downloaded: {result['downloaded']}")
        print(f"  Failed: {result['failed']}")

        failures = [r for r in result["results"] if not r.success]
        if failures:
            print("\nFailed downloads:")
            for f in failures[:10]:  # Show first 10
                print(f"  - {f.episode_id}: {f.error}")

    finally:
        if downloader:
            downloader.close()
        repository.close()


def reconcile_files(args, config: Config):
    """Re-check downloaded episodes against the disk."""
    repository = create_repository_from_config(config)

    try:
        result = DiskReconciler(repository).reconcile()

        print("\nReconcile complete:")
        print(f"  Checked: {result.checked}")
        print(f"  Re-queued: {len(result.requeued)}")
        print(f"  Marked deleted: {len(result.deleted)}")

    finally:
        repository.close()


def list_podcasts(args, config: Config):
    """
    Print a table of podcasts: ID, title (truncated to 40 characters), episode count and paused state.
    """
    repository = create_repository_from_config(config)

    try:
        podcasts = repository.list_podcasts(limit=args.limit)

        if not podcasts:
            print("No podcasts found")
            return

        print(f"\n{'ID':<36}  {'Title':<40}  {'Episodes':<10}  {'Status'}")
        print("-" * 100)

        for podcast in podcasts:
            episodes = repository.list_episodes(podcast_id=podcast.id)
            status = "Paused" if podcast.is_paused else "Active"
            print(
                f"{podcast.id:<36}  "
                f"{podcast.title[:40]:<40}  "
                f"{len(episodes):<10}  "
                f"{status}"
            )

    finally:
        repository.close()


def show_status(args, config: Config):
    """
    Display overall statistics, or detailed status for one podcast.

    Exits with status code 1 if a specified `podcast_id` is not found.
    """
    repository = create_repository_from_config(config)

    try:
        if args.podcast_id:
            stats = repository.get_podcast_stats(args.podcast_id)
            if not stats:
                print(f"Podcast not found: {args.podcast_id}")
                sys.exit(1)

            print(f"\nPodcast: {stats['title']}{' (paused)' if stats['is_paused'] else ''}")
            print(f"  Last episode: {stats['last_episode'] or 'never refreshed'}")
        else:
            stats = repository.get_overall_stats()

            print("\nOverall Statistics:")
            print(f"  Total podcasts: {stats['total_podcasts']}")
            print(f"  Paused: {stats['paused_podcasts']}")

        print(f"  Total episodes: {stats['total_episodes']}")
        print("\n  Download Status:")
        print(f"    Queued: {stats['not_downloaded']}")
        print(f"    Downloaded: {stats['downloaded']} ({stats['downloaded_size'] / 1024 / 1024:.1f} MB)")
        print(f"    Deleted: {stats['deleted']}")

        lock = JobLock(repository)
        print(f"\n  Download run in progress: {'yes' if lock.is_locked(DOWNLOAD_JOB_NAME) else 'no'}")

    finally:
        repository.close()


def queue_episodes(args, config: Config):
    """Queue one episode, or every episode of a podcast, for download."""
    repository = create_repository_from_config(config)

    try:
        service = EpisodeService(repository)
        try:
            if args.podcast_id:
                count = service.queue_all_episodes(args.podcast_id)
                print(f"Queued {count} episodes")
            else:
                episode = service.queue_episode(args.episode_id)
                print(f"Queued: {episode.title}")
        except NotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)

    finally:
        repository.close()


def delete_episode(args, config: Config):
    """Delete an episode's file and mark it so it is not downloaded again."""
    repository = create_repository_from_config(config)

    try:
        service = EpisodeService(repository)
        try:
            if args.podcast_id:
                count = service.delete_podcast_episodes(args.podcast_id)
                print(f"Deleted {count} episodes")
            else:
                episode = service.delete_episode_file(args.episode_id)
                print(f"Deleted: {episode.title}")
        except NotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)

    finally:
        repository.close()


def pause_podcast(args, config: Config):
    """Pause a podcast, or resume it with `--resume`."""
    repository = create_repository_from_config(config)

    try:
        service = EpisodeService(repository)
        try:
            podcast = service.set_paused(args.podcast_id, not args.resume)
        except NotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)
        print(f"{'Resumed' if args.resume else 'Paused'}: {podcast.title}")

    finally:
        repository.close()


def remove_podcast(args, config: Config):
    """Unsubscribe from a podcast, deleting its files unless `--keep-files` is given."""
    repository = create_repository_from_config(config)

    downloader = None
    try:
        downloader = EpisodeDownloader.from_config(config, repository)
        service = EpisodeService(repository, downloader)
        try:
            service.delete_podcast(args.podcast_id, delete_files=not args.keep_files)
        except NotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)
        print(f"Removed podcast {args.podcast_id}")

    finally:
        if downloader:
            downloader.close()
        repository.close()


def _parse_setting_value(name: str, raw: str):
    field_types = {f.name: f.type for f in fields(SyncSettings)}
    if name not in field_types:
        raise ValueError(f"Unknown setting: {name}")

    field_type = field_types[name]
    if field_type in (bool, "bool"):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Invalid boolean for {name}: {raw}")
    if field_type in (int, "int"):
        return int(raw)
    return raw or None


def manage_settings(args, config: Config):
    """Show the download settings, or update them with `--set name=value`."""
    repository = create_repository_from_config(config)

    try:
        service = EpisodeService(repository)

        if args.set:
            updates = {}
            try:
                for assignment in args.set:
                    name, sep, raw = assignment.partition("=")
                    if not sep:
                        raise ValueError(f"Expected name=value, got: {assignment}")
                    updates[name.strip()] = _parse_setting_value(name.strip(), raw)
                settings = service.update_settings(**updates)
            except ValueError as e:
                print(f"Error: {e}")
                sys.exit(1)
        else:
            settings = service.get_settings()

        print("\nSettings:")
        for f in fields(SyncSettings):
            print(f"  {f.name}: {getattr(settings, f.name)}")

    finally:
        repository.close()


def unlock_jobs(args, config: Config):
    """Reclaim expired job locks, or force-release one with `--force NAME`."""
    repository = create_repository_from_config(config)

    try:
        lock = JobLock(repository)
        if args.force:
            lock.release(args.force)
            print(f"Released job lock: {args.force}")
        else:
            count = lock.reclaim_stale()
            print(f"Reclaimed {count} stale job locks")

    finally:
        repository.close()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = get_base_parser("Podcast management CLI")
    parser.formatter_class = argparse.RawDescriptionHelpFormatter
    add_log_level_argument(parser)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # add command
    add_parser = subparsers.add_parser(
        "add",
        help="Subscribe to one or more feed URLs",
    )
    add_parser.add_argument("urls", nargs="+", help="RSS feed URL(s)")

    # import command
    import_parser = subparsers.add_parser(
        "import",
        help="Subscribe to every feed URL in a text file",
    )
    import_parser.add_argument("file", help="File with one feed URL per line")
    add_dry_run_argument(import_parser)

    # sync command
    sync_parser = subparsers.add_parser(
        "sync",
        help="Refresh podcast feeds",
    )
    sync_parser.add_argument(
        "--podcast-id",
        help="Sync specific podcast by ID",
    )

    # download command
    download_parser = subparsers.add_parser(
        "download",
        help="Download queued episodes",
    )
    download_parser.add_argument(
        "--episode-id",
        help="Download a single episode now",
    )

    # reconcile command
    subparsers.add_parser(
        "reconcile",
        help="Re-check downloaded episodes against the disk",
    )

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List podcasts",
    )
    list_parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of podcasts to show",
    )

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="Show status and statistics",
    )
    status_parser.add_argument(
        "--podcast-id",
        help="Show status for specific podcast",
    )

    # queue command
    queue_parser = subparsers.add_parser(
        "queue",
        help="Queue an episode (or all episodes of a podcast) for download",
    )
    queue_target = queue_parser.add_mutually_exclusive_group(required=True)
    queue_target.add_argument("--episode-id", help="Episode to queue")
    queue_target.add_argument("--podcast-id", help="Queue every episode of this podcast")

    # delete-episode command
    delete_parser = subparsers.add_parser(
        "delete-episode",
        help="Delete downloaded files and stop re-downloading them",
    )
    delete_target = delete_parser.add_mutually_exclusive_group(required=True)
    delete_target.add_argument("--episode-id", help="Episode to delete")
    delete_target.add_argument("--podcast-id", help="Delete every episode of this podcast")

    # pause command
    pause_parser = subparsers.add_parser(
        "pause",
        help="Pause or resume a podcast",
    )
    pause_parser.add_argument("podcast_id", help="Podcast ID")
    pause_parser.add_argument(
        "--resume",
        action="store_true",
        help="Resume instead of pausing",
    )

    # remove command
    remove_parser = subparsers.add_parser(
        "remove",
        help="Unsubscribe from a podcast",
    )
    remove_parser.add_argument("podcast_id", help="Podcast ID")
    remove_parser.add_argument(
        "--keep-files",
        action="store_true",
        help="Keep downloaded files on disk",
    )

    # settings command
    settings_parser = subparsers.add_parser(
        "settings",
        help="Show or change download settings",
    )
    settings_parser.add_argument(
        "--set",
        action="append",
        metavar="NAME=VALUE",
        help="Change a setting (repeatable)",
    )

    # unlock command
    unlock_parser = subparsers.add_parser(
        "unlock",
        help="Reclaim expired job locks",
    )
    unlock_parser.add_argument(
        "--force",
        metavar="NAME",
        help="Release the named lock even if it has not expired",
    )

    return parser


def main():
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Load configuration
    config = Config(env_file=args.env_file)

    # Route to appropriate command
    commands = {
        "add": add_podcast,
        "import": import_feeds,
        "sync": sync_feeds,
        "download": download_episodes,
        "reconcile": reconcile_files,
        "list": list_podcasts,
        "status": show_status,
        "queue": queue_episodes,
        "delete-episode": delete_episode,
        "pause": pause_podcast,
        "remove": remove_podcast,
        "settings": manage_settings,
        "unlock": unlock_jobs,
    }

    command_func = commands.get(args.command)
    if command_func:
        command_func(args, config)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
