"""Unit tests for logging helpers and asyncio task utilities."""

import asyncio
import logging

import pytest

from framecert.core.asyncio_utils import cancel_and_wait, create_logged_task
from framecert.core.logging_config import coerce_level, configure_logging
from framecert.core.logging_utils import StructuredLogger, ensure_structured_logger, get_module_logger


class TestStructuredLogger:
    """Test component prefixes."""

    def test_module_logger_namespace(self):
        logger = get_module_logger("framecert.modules.FrameTiming.frame_core.sampler")

        assert logger.name == "framecert.modules.FrameTiming.frame_core.sampler"
        assert logger.component == "sampler"

    def test_plain_name_is_namespaced(self):
        logger = get_module_logger("ConfigManager")

        assert logger.name == "framecert.ConfigManager"
        assert logger.component == "ConfigManager"

    def test_messages_prefixed(self, caplog):
        logger = get_module_logger("framecert.tests.prefix")

        with caplog.at_level(logging.INFO, logger="framecert"):
            logger.info("Polled %d frames", 3)

        assert "[prefix] Polled 3 frames" in caplog.text

    def test_bound_context_in_tag(self, caplog):
        logger = get_module_logger("framecert.tests.sampler").bind(device="emulator-5554", layer=None)

        with caplog.at_level(logging.INFO, logger="framecert"):
            logger.warning("No overlap with previous poll")

        assert "[sampler device=emulator-5554] No overlap with previous poll" in caplog.text
        assert logger.context == {"device": "emulator-5554"}

    def test_bad_format_args_do_not_raise(self, caplog):
        logger = get_module_logger("framecert.tests.badargs")

        with caplog.at_level(logging.INFO, logger="framecert"):
            logger.info("value %d", "not-a-number")

        assert "args=not-a-number" in caplog.text

    def test_ensure_structured_logger(self):
        wrapped = ensure_structured_logger(logging.getLogger("framecert.tests.wrap"))

        assert isinstance(wrapped, StructuredLogger)
        assert ensure_structured_logger(wrapped) is wrapped
        assert isinstance(ensure_structured_logger(None, fallback_name="x"), StructuredLogger)


class TestConfigureLogging:
    """Test root logging configuration."""

    def test_coerce_level(self):
        assert coerce_level("debug") == logging.DEBUG
        assert coerce_level(logging.WARNING) == logging.WARNING
        with pytest.raises(ValueError):
            coerce_level("chatty")

    def test_file_handler(self, tmp_path, monkeypatch):
        import framecert.core.logging_config as logging_config

        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)
        monkeypatch.setattr(logging_config, "_configured", False)
        log_file = tmp_path / "logs" / "framecert.log"

        configure_logging("info", force=True, console=False, log_file=log_file)
        try:
            get_module_logger("framecert.tests.file").info("written to disk")
            for handler in root.handlers:
                handler.flush()

            assert "[file] written to disk" in log_file.read_text(encoding="utf-8")
            assert logging.getLogger("asyncio").level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()


class TestAsyncioUtils:
    """Test background task helpers."""

    @pytest.mark.asyncio
    async def test_task_exception_logged(self, caplog):
        async def boom():
            raise RuntimeError("poll loop died")

        with caplog.at_level(logging.ERROR):
            task = create_logged_task(boom(), context="sampler")
            with pytest.raises(RuntimeError):
                await task
            await asyncio.sleep(0)

        assert "Unhandled exception in sampler" in caplog.text

    @pytest.mark.asyncio
    async def test_cancel_and_wait(self):
        task = create_logged_task(asyncio.sleep(60), context="sleeper")

        await cancel_and_wait(task)

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_cancel_and_wait_none(self):
        await cancel_and_wait(None)
