import importlib.util
import logging
import warnings

import studyhub.errors
from studyhub.errors import EmptyMessage
from studyhub.utils.logs import ErrorLogger


class CollectingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record):
        self.records.append(record)


def collecting_logger(name: str) -> tuple[ErrorLogger, CollectingHandler]:
    logger = ErrorLogger(name)
    handler = CollectingHandler()
    logger.logger.addHandler(handler)
    return logger, handler


def test_error_module_uses_no_deprecated_status_names():
    module_spec = importlib.util.spec_from_file_location(
        "studyhub_errors_reloaded", studyhub.errors.__file__
    )
    module = importlib.util.module_from_spec(module_spec)

    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        module_spec.loader.exec_module(module)

    assert module.EmptyMessage.status_code == 422
    assert EmptyMessage.status_code == 422


def test_plain_calls_report_the_calling_function():
    logger, handler = collecting_logger("funcname-plain")

    logger.info("Group created", group_id="g1")
    logger.warning("Live send rejected")

    assert [r.funcName for r in handler.records] == ["test_plain_calls_report_the_calling_function"] * 2
    assert handler.records[0].getMessage() == 'Group created | {"group_id":"g1"}'


def test_exception_helpers_report_the_calling_function():
    logger, handler = collecting_logger("funcname-exception")

    def insert_row():
        logger.log_database_error("insert", ValueError("boom"), table="group_messages")

    def publish_row():
        logger.log_external_api_error("redis", ConnectionError("down"))

    insert_row()
    publish_row()
    logger.exception("Upload failed", RuntimeError("s3"))

    assert [r.funcName for r in handler.records] == [
        "insert_row",
        "publish_row",
        "test_exception_helpers_report_the_calling_function",
    ]
    first = handler.records[0]
    assert first.getMessage().startswith("Store error during insert | ")
    assert '"operation":"insert"' in first.getMessage()
    assert first.exc_info[0] is ValueError
