from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.actuators",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Actuator state changed",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_actuator_states_render_as_on_off() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(
        _record(actuator_id="led2", state=True, states={"led1": False, "led2": True})
    )

    assert line == "Actuator state changed | actuator_id=led2 state=on states=led1=off,led2=on"


def test_other_fields_render_verbatim_and_none_is_skipped() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(persisted=False, channel="temperature", reason=None))

    assert line == "Actuator state changed | channel=temperature persisted=False"


def test_record_without_context_is_unchanged() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    assert formatter.format(_record()) == "INFO Actuator state changed"
