import logging

import pytest

from stepsql.logging import CachedHandler, ROOT_LOGGER_NAME, setup_logging


@pytest.fixture
def root_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = logger.level
    handlers = list(logger.handlers)
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def test_cached_handler():
    handler = CachedHandler(maxlen=2)
    logger = logging.getLogger("stepsql.test")
    logger.addHandler(handler)

    try:
        for i in range(3):
            logger.warning("message %s", i)

        assert handler.get_all_messages() == ["message 1", "message 2"]
        assert len(handler.cached_records) == 2
    finally:
        logger.removeHandler(handler)


def test_debug_logs(db, log_records):
    db.prepare("SELECT 1").finalize()

    messages = log_records.get_all_messages()
    assert any(m.startswith("Prepared statement") for m in messages)
    assert any(m.startswith("Finalized statement") for m in messages)


def test_setup_logging_file(root_logger, tmp_path):
    path = tmp_path / "stepsql.log"
    handlers = setup_logging(logging.INFO, stderr=False, file=str(path))

    assert len(handlers) == 1
    assert root_logger.level == logging.INFO

    logging.getLogger("stepsql.test").info("written to file")
    handlers[0].flush()

    assert "written to file" in path.read_text()


def test_setup_logging_level_from_config(root_logger):
    handlers = setup_logging(stderr=True)

    assert len(handlers) == 1
    assert root_logger.level == logging.INFO
