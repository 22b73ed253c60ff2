import logging

from square_checkout import logging_config


def capture_basic_config(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    return calls


def test_defaults_to_info_on_stdout(monkeypatch):
    monkeypatch.delenv(logging_config.LOG_FILE_ENV, raising=False)
    monkeypatch.delenv(logging_config.LOG_LEVEL_ENV, raising=False)
    calls = capture_basic_config(monkeypatch)

    logging_config.setup_logging()

    [kwargs] = calls
    assert kwargs["level"] == "INFO"
    assert [type(h) for h in kwargs["handlers"]] == [logging.StreamHandler]
    assert logging.getLogger("httpx").level == logging.WARNING


def test_level_and_file_come_from_environment(monkeypatch, tmp_path):
    log_file = tmp_path / "adapter.log"
    monkeypatch.setenv(logging_config.LOG_FILE_ENV, str(log_file))
    monkeypatch.setenv(logging_config.LOG_LEVEL_ENV, "debug")
    calls = capture_basic_config(monkeypatch)

    logging_config.setup_logging()

    [kwargs] = calls
    assert kwargs["level"] == "DEBUG"
    file_handlers = [h for h in kwargs["handlers"] if isinstance(h, logging.FileHandler)]
    assert [h.baseFilename for h in file_handlers] == [str(log_file)]
    for handler in file_handlers:
        handler.close()


def test_get_logger_returns_named_logger():
    assert logging_config.get_logger("square_checkout.cart").name == "square_checkout.cart"
