import logging

from shared.logging_config import SensitiveDataFilter, setup_logging


def make_record(msg, args=()):
    return logging.LogRecord("transfer_tool", logging.INFO, __file__, 1, msg, args, None)


def test_masks_secrets_in_message():
    record = make_record("appKey=abc app_secret: xyz SecurityToken=tok123")
    SensitiveDataFilter().filter(record)
    text = record.getMessage()
    assert "xyz" not in text
    assert "tok123" not in text
    assert "abc" not in text
    assert text.count("***MASKED***") == 3


def test_masks_signed_url_arguments():
    url = "https://b.example.com/a.wav?X-Amz-Security-Token=sts-token&Signature=sig%2F&Expires=1"
    record = make_record("URL %s", (url,))
    SensitiveDataFilter().filter(record)
    text = record.getMessage()
    assert "sts-token" not in text
    assert "sig%2F" not in text
    assert "Expires=1" in text


def test_non_string_args_pass_through():
    record = make_record("part %d of %d", (2, 5))
    assert SensitiveDataFilter().filter(record)
    assert record.getMessage() == "part 2 of 5"


def test_setup_logging_is_idempotent(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    logger = setup_logging("voicedrop-test")
    again = setup_logging("voicedrop-test")
    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert isinstance(logger.handlers[0].filters[0], SensitiveDataFilter)
