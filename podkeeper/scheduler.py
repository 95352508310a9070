"""Podcast refresh scheduler.

Runs the refresh orchestrator: periodic feed refreshes followed by
downloads, plus reconciliation and maintenance on their own intervals.
"""

import logging
import sys

from podkeeper.argparse_shared import add_log_level_argument, get_base_parser
from podkeeper.config import Config
from podkeeper.db.factory import create_repository_from_config
from podkeeper.workflow.config import PipelineConfig
from podkeeper.workflow.orchestrator import RefreshOrchestrator


def run_pipeline(config: Config, pipeline_config: PipelineConfig, repository, once: bool = False):
    """Run the refresh orchestrator.

    Args:
        config: Application configuration.
        pipeline_config: Loop timing configuration.
        repository: Database repository.
        once: Run every stage a single time instead of looping.
    """
    orchestrator = RefreshOrchestrator(
        config=config,
        pipeline_config=pipeline_config,
        repository=repository,
    )

    if once:
        results = orchestrator.run_once()
        for stage, result in results.items():
            logging.info(
                f"{stage}: processed={result.processed}, "
                f"failed={result.failed}, skipped={result.skipped}"
            )
        return

    stats = orchestrator.run()

    logging.info(
        f"Scheduler complete: "
        f"{stats.refresh_runs} refreshes, "
        f"{stats.episodes_downloaded} downloaded, "
        f"{stats.download_failures} failed, "
        f"duration={stats.duration_seconds:.1f}s"
    )


def main():
    parser = get_base_parser("Podcast refresh scheduler.")
    add_log_level_argument(parser)
    parser.add_argument("--once", action="store_true", help="Run every stage once and exit")
    args = parser.parse_args()

    # Log to stdout for Docker
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    # urllib3 logs every retry at INFO
    if args.log_level == "INFO":
        logging.getLogger("urllib3").setLevel("WARNING")

    config = Config(env_file=args.env_file)
    pipeline_config = PipelineConfig.from_env()

    repository = create_repository_from_config(config)

    logging.info("podkeeper scheduler starting...")
    logging.info(f"Download directory: {config.PODCAST_DOWNLOAD_DIRECTORY}")
    logging.info(f"Refresh interval: {pipeline_config.refresh_interval_seconds}s")
    logging.info(f"Reconcile interval: {pipeline_config.reconcile_interval_seconds}s")

    try:
        run_pipeline(config, pipeline_config, repository, once=args.once)
    except KeyboardInterrupt:
        logging.info("Scheduler interrupted by user")
    except Exception:
        logging.exception("Scheduler failed")
        sys.exit(1)
    finally:
        repository.close()
        logging.info("Database connection closed")


if __name__ == "__main__":
    main()
