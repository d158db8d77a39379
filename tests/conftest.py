# -*- coding: utf-8 -*-

import logging

import pytest

from stepsql import Connection
from stepsql.config import reset_config, CONFIG_ENV_VAR
from stepsql.logging import CachedHandler, ROOT_LOGGER_NAME


logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def db():
    conn = Connection(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def store(db):
    db.execute("CREATE TABLE store (article TEXT, category TEXT, amount INT)")
    return db


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def file_db(db_path):
    conn = Connection(db_path)
    conn.execute("CREATE TABLE store (article TEXT, category TEXT, amount INT)")
    yield conn
    conn.close()


@pytest.fixture
def log_records():
    handler = CachedHandler()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.addHandler(handler)
    yield handler
    logger.removeHandler(handler)
