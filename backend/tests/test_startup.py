import asyncio
import logging
from decimal import Decimal

from orderhub.core.config import settings
from orderhub.core.logging_config import log_files, setup_logging
from orderhub.db.migrations import CURRENT_DB_VERSION, get_db_version, run_migrations
from orderhub.services import scheduler
from orderhub.services.sample_pricing import get_system_sample_margin


def test_migrations_seed_defaults_once(run):
    async def scenario(db):
        result = await run_migrations(db)
        assert result["errors"] == []
        assert result["columns_added"] == []
        assert result["sample_margin"]["action"] == "created"
        assert await get_db_version(db) == CURRENT_DB_VERSION
        assert await get_system_sample_margin(db) == Decimal("80.0")

        again = await run_migrations(db)
        assert again["old_version"] == CURRENT_DB_VERSION
        assert again["sample_margin"]["action"] == "none"

    run(scenario)


def test_scheduler_disabled_by_setting():
    scheduler.init_scheduler()
    status = scheduler.get_scheduler_status()
    assert status == {"enabled": False, "running": False, "jobs": []}


def test_scheduler_registers_draft_cleanup(monkeypatch):
    monkeypatch.setattr(settings, "DRAFT_CLEANUP_ENABLED", True)

    async def scenario():
        scheduler.init_scheduler()
        try:
            status = scheduler.get_scheduler_status()
            assert status["running"]
            assert [job["id"] for job in status["jobs"]] == ["draft_cleanup"]
            assert status["jobs"][0]["next_run_time"]
        finally:
            scheduler.shutdown_scheduler()

    asyncio.run(scenario())
    assert scheduler.scheduler is None


def test_logging_writes_dated_files(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        files = setup_logging("debug", tmp_path / "logs")
        assert files == list(log_files(tmp_path / "logs").values())
        assert root.level == logging.DEBUG

        logging.getLogger("orderhub.test").info("routing started")
        logging.getLogger("orderhub.test").error("routing failed")
        logging.getLogger("urllib3").info("connection pool noise")
        for handler in root.handlers:
            handler.flush()

        everything, errors = (path.read_text(encoding="utf-8") for path in files)
        assert "routing started" in everything and "routing failed" in everything
        assert "connection pool noise" not in everything
        assert "routing failed" in errors and "routing started" not in errors
        # 文件中不应出现控制台颜色码
        assert "\033[" not in everything
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
