import logging

from c64bot.logging_filters import (
    SuppressPathAccessLog,
    install_uvicorn_access_log_filters,
)


def _access_record(path: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("127.0.0.1:36130", "GET", path, "1.1", 200),
        exc_info=None,
    )


def test_health_requests_suppressed() -> None:
    f = SuppressPathAccessLog()

    assert f.filter(_access_record("/health")) is False
    assert f.filter(_access_record("/health?probe=1")) is False


def test_api_requests_kept() -> None:
    f = SuppressPathAccessLog()

    assert f.filter(_access_record("/api/files")) is True
    assert f.filter(_access_record("/healthz")) is True


def test_preformatted_message_suppressed() -> None:
    f = SuppressPathAccessLog()
    record = logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='127.0.0.1:1 - "HEAD /health HTTP/1.1" 200',
        args=None,
        exc_info=None,
    )

    assert f.filter(record) is False


def test_install_is_idempotent() -> None:
    access_logger = logging.getLogger("uvicorn.access")
    before = [x for x in access_logger.filters if isinstance(x, SuppressPathAccessLog)]

    install_uvicorn_access_log_filters()
    install_uvicorn_access_log_filters()

    after = [x for x in access_logger.filters if isinstance(x, SuppressPathAccessLog)]
    assert len(after) == 1
    if not before:
        access_logger.removeFilter(after[0])
