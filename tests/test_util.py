import hashlib
import logging

from resiliencemap.util import (
    detect_git_commit,
    ensure_directories,
    format_count,
    format_fixed,
    setup_logging,
    sha256_file,
)


def test_ensure_directories_reports_only_new(tmp_path):
    existing = tmp_path / 'build'
    existing.mkdir()
    fresh = tmp_path / 'build' / 'logs'

    created = ensure_directories([existing, fresh, fresh])

    assert created == [fresh]
    assert fresh.is_dir()
    assert ensure_directories([existing, fresh]) == []


def test_sha256_file_matches_hashlib(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_bytes(b'project: {}\n' * 1000)
    assert sha256_file(path) == hashlib.sha256(path.read_bytes()).hexdigest()


def test_detect_git_commit_outside_repo(tmp_path):
    assert detect_git_commit(tmp_path / 'not-a-repo') is None


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / 'logs' / 'build.log'
    setup_logging(log_file)
    logger = setup_logging(log_file, verbose=True)

    logger.debug('reprojection sample')
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert len(logging.getLogger().handlers) == 2
    assert logging.getLogger('urllib3').level == logging.WARNING
    assert 'DEBUG | resiliencemap | reprojection sample' in log_file.read_text(encoding='utf-8')


def test_formatting_helpers():
    assert format_fixed(0.856, 2) == '0.86'
    assert format_fixed(None, 2) == 'N/A'
    assert format_fixed(True, 2) == 'N/A'
    assert format_count(1184.4) == '1184'
    assert format_count(float('nan')) == 'N/A'
