import pytest


@pytest.fixture(autouse=True)
def _task_logs_in_tmp(tmp_path, monkeypatch):
    """任务日志写到临时目录，避免测试在仓库里留下 logs/"""
    from deskagent.core.config import settings

    monkeypatch.setattr(settings, "log_path", str(tmp_path))
    yield
