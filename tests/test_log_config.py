"""Package logger setup."""

from __future__ import annotations

import io
import logging

from goaltracker_ui.log_config import LOGGER_NAME, mask_token, setup_logging


def test_setup_is_idempotent():
    stream = io.StringIO()
    setup_logging("INFO", stream=stream)
    logger = setup_logging("INFO", stream=stream)
    assert len(logger.handlers) == 1

    logging.getLogger(f"{LOGGER_NAME}.goals").info("fetched %d goals", 3)
    output = stream.getvalue()
    assert output.count("fetched 3 goals") == 1
    assert "| INFO     | goaltracker_ui.goals |" in output


def test_mask_token():
    assert mask_token(None) == "<none>"
    assert mask_token("short") == "***"
    assert mask_token("abcdefghijklmnop") == "abcd...mnop"
