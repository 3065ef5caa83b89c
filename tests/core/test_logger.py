import inspect
import json
from uuid import uuid4

import pytest


def _flush_loguru(logger_module) -> None:
    complete_result = logger_module.logger.complete()
    if inspect.isawaitable(complete_result):
        iterator = complete_result.__await__()
        while True:
            try:
                next(iterator)
            except StopIteration:
                break


def _latest_log_file(log_dir, pattern):
    files = sorted(log_dir.glob(pattern))
    assert files, f"missing log file pattern: {pattern}"
    return files[-1]


@pytest.fixture()
def configured_logger(tmp_path):
    from deskagent.core.config import settings
    import deskagent.core.logger as logger_module

    original = {
        "log_level": settings.log_level,
        "log_path": settings.log_path,
        "log_retention_days": settings.log_retention_days,
        "log_console_enabled": settings.log_console_enabled,
    }

    settings.log_level = "INFO"
    settings.log_path = str(tmp_path)
    settings.log_retention_days = 3
    settings.log_console_enabled = False
    logger_module.setup_logger()

    try:
        yield logger_module, tmp_path
    finally:
        for key, value in original.items():
            setattr(settings, key, value)
        logger_module.setup_logger()


def test_file_output_written(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"file-output-{uuid4()}"

    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "app_*.log").read_text(encoding="utf-8")
    assert message in content


def test_errors_split_into_error_log(configured_logger):
    logger_module, log_dir = configured_logger
    info_message = f"info-{uuid4()}"
    error_message = f"error-{uuid4()}"

    logger_module.logger.info(info_message)
    logger_module.logger.error(error_message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "error_*.log").read_text(encoding="utf-8")
    assert error_message in content
    assert info_message not in content


def test_setup_logger_idempotent_when_called_twice(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"idempotent-{uuid4()}"

    logger_module.setup_logger()
    logger_module.setup_logger()
    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    lines = _latest_log_file(log_dir, "app_*.log").read_text(encoding="utf-8").splitlines()
    records = [json.loads(line)["record"] for line in lines if line.strip()]
    assert [r["message"] for r in records].count(message) == 1


def test_get_task_logger_reuses_sink(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"task-log-{uuid4()}"

    logger_module.get_task_logger("task-1")
    task_logger = logger_module.get_task_logger("task-1")
    task_logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir / "tasks", "task_task-1_*.log").read_text(encoding="utf-8")
    assert content.count(message) == 1


def test_task_logs_do_not_leak_between_tasks(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"only-a-{uuid4()}"

    logger_module.get_task_logger("task-a").info(message)
    logger_module.get_task_logger("task-b").info("other")
    _flush_loguru(logger_module)

    a_content = _latest_log_file(log_dir / "tasks", "task_task-a_*.log").read_text(encoding="utf-8")
    b_content = _latest_log_file(log_dir / "tasks", "task_task-b_*.log").read_text(encoding="utf-8")
    assert message in a_content
    assert message not in b_content


def test_release_task_logger_removes_sink(configured_logger):
    logger_module, log_dir = configured_logger
    handlers_before = len(logger_module.logger._core.handlers)

    task_logger = logger_module.get_task_logger("task-done")
    task_logger.info("before release")
    assert len(logger_module.logger._core.handlers) == handlers_before + 1

    assert logger_module.release_task_logger("task-done") is True
    assert "task-done" not in logger_module._task_sinks
    assert len(logger_module.logger._core.handlers) == handlers_before

    late_message = f"after-release-{uuid4()}"
    task_logger.info(late_message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir / "tasks", "task_task-done_*.log").read_text(encoding="utf-8")
    assert "before release" in content
    assert late_message not in content


def test_release_unknown_task_logger_is_noop(configured_logger):
    logger_module, _ = configured_logger
    assert logger_module.release_task_logger("never-registered") is False
