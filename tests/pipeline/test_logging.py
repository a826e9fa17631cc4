# SPDX-License-Identifier: MIT
"""Tests for pipeline logging setup."""

from loguru import logger

from lore_pipeline.utils.logging import import_logger, setup_logging


class TestImportLogger:
    def test_binds_source(self):
        records = []
        handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
        try:
            import_logger("year 1900").info("imported")
        finally:
            logger.remove(handler_id)

        assert records[-1]["extra"]["source"] == "year 1900"
        assert records[-1]["message"] == "imported"


class TestSetupLogging:
    def test_file_log_carries_source(self, tmp_path):
        log_file = tmp_path / "logs" / "import.log"

        setup_logging(level="info", log_file=log_file)
        try:
            import_logger("rivers/low").info("imported")
            logger.info("outside an import")
        finally:
            logger.remove()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert any("rivers/low" in line and "imported" in line for line in lines)
        assert any("| - |" in line and "outside an import" in line for line in lines)
