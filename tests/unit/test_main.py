from tailwatch.main import (
    EXIT_CONFIG,
    EXIT_WATCH_SETUP,
    main,
    parse_args,
)
from tailwatch.models.schemas import StartPosition


def test_parse_args_defaults():
    args = parse_args([])

    assert args.root is None
    assert args.poll_ms is None
    assert args.start_position is None
    assert args.log_level is None


def test_parse_args_start_position_flags():
    assert parse_args(["--from-end"]).start_position is StartPosition.END
    assert parse_args(["--from-start"]).start_position is StartPosition.START


def test_missing_root_directory_exits_with_setup_error(log_root, clean_env):
    assert main(["--root", str(log_root / "missing")]) == EXIT_WATCH_SETUP


def test_file_as_root_exits_with_setup_error(log_root, clean_env):
    path = log_root / "a.log"
    path.write_text("")

    assert main(["--root", str(path)]) == EXIT_WATCH_SETUP


def test_missing_configuration_exits_with_config_error(log_root, clean_env):
    assert main([]) == EXIT_CONFIG


def test_empty_root_exits_with_config_error(log_root, clean_env):
    assert main(["--root", ""]) == EXIT_CONFIG


def test_invalid_poll_interval_exits_with_config_error(log_root, clean_env):
    assert main(["--root", str(log_root), "--poll-ms", "0"]) == EXIT_CONFIG
