"""Tests for shared argparse helpers."""

from podkeeper.argparse_shared import (
    add_dry_run_argument,
    add_log_level_argument,
    get_base_parser,
)


class TestGetBaseParser:
    def test_env_file_default(self):
        args = get_base_parser().parse_args([])
        assert args.env_file is None

    def test_env_file_short_flag(self):
        args = get_base_parser().parse_args(["-e", "custom.env"])
        assert args.env_file == "custom.env"

    def test_description(self):
        assert get_base_parser("Scheduler").description == "Scheduler"


class TestAddArguments:
    def test_dry_run(self):
        parser = get_base_parser()
        add_dry_run_argument(parser)

        assert parser.parse_args([]).dry_run is False
        assert parser.parse_args(["-d"]).dry_run is True

    def test_log_level(self):
        parser = get_base_parser()
        add_log_level_argument(parser)

        assert parser.parse_args([]).log_level == "INFO"
        assert parser.parse_args(["--log-level", "DEBUG"]).log_level == "DEBUG"
