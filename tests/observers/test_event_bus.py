import logging

from foundry.logging.log import init_logging
from foundry.observers.dispatcher import EventBus
from foundry.observers.events import DNSRegistrationFailed, ReconcileStarted, new_ctx
from foundry.observers.logger import LoggerObserver


class Broken:
    def notify(self, event):
        raise RuntimeError("observer bug")


class Recorder:
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)


def test_broken_observer_does_not_stop_fan_out():
    rec = Recorder()
    bus = EventBus([Broken()])
    bus.subscribe(rec)

    bus.emit(ReconcileStarted(**new_ctx("run-1", "zot"), dry_run=False))

    assert len(rec.events) == 1
    assert rec.events[0].dict()["component"] == "zot"


def test_logger_observer_levels(caplog):
    logger = logging.getLogger("observer-test")
    with caplog.at_level(logging.DEBUG, logger="observer-test"):
        obs = LoggerObserver(logger)
        obs.notify(ReconcileStarted(**new_ctx("r", "zot"), dry_run=True))
        obs.notify(DNSRegistrationFailed(**new_ctx("r", "zot"), error="refused"))

    levels = [r.levelno for r in caplog.records]
    assert levels == [logging.DEBUG, logging.WARNING]
    assert "DNSRegistrationFailed component=zot" in caplog.records[1].getMessage()


def test_init_logging_writes_run_file(tmp_path):
    logger, run_id, log_path = init_logging(base_dir=tmp_path, name="foundry-test")
    try:
        logger.info("hello")
        for h in logger.handlers:
            h.flush()
        assert log_path.parent == tmp_path
        assert run_id in log_path.name
        assert "hello" in log_path.read_text()
    finally:
        for h in list(logger.handlers):
            h.close()
        logger.handlers.clear()
