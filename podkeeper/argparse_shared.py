import argparse


def get_base_parser(description: str = "Podcast feed sync and downloader") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-e", "--env-file", help="Path to a custom .env file", default=None)
    return parser


def add_dry_run_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-d", "--dry-run", action="store_true", help="Perform a dry run without making changes")


def add_log_level_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-l", "--log-level", help="Set log level (DEBUG, INFO, WARNING, ERROR)", default="INFO")
