"""Logging setup and the JSON-lines game transcript."""
import json
import logging
import random
from typing import Callable, Optional

TRANSCRIPT_LOGGER_NAME = "agirace.transcript"


class JSONLFormatter(logging.Formatter):
    """Writes each record's message (a dict) as one JSON line."""

    def format(self, record):
        return json.dumps(record.msg, default=str)


def setup_logging(verbose: bool = False, transcript_file: Optional[str] = None, log_level: Optional[str] = None):
    """Configure console logging and, optionally, a JSONL transcript file.

    Returns the transcript logger.
    """
    if log_level is None:
        level = logging.DEBUG if verbose else logging.INFO
    else:
        level = getattr(logging, log_level.upper())
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    transcript_logger = logging.getLogger(TRANSCRIPT_LOGGER_NAME)
    transcript_logger.setLevel(logging.INFO)
    transcript_logger.propagate = False

    if transcript_file:
        handler = logging.FileHandler(transcript_file)
        handler.setFormatter(JSONLFormatter())
        transcript_logger.addHandler(handler)

    # turn down logging volume of these packages
    logging.getLogger("autogen_core.events").setLevel(logging.WARNING)
    logging.getLogger("autogen_ext").setLevel(logging.ERROR)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return transcript_logger


def get_transcript_logger():
    """Get the transcript logger (records are dicts; call setup_logging to attach a file)."""
    return logging.getLogger(TRANSCRIPT_LOGGER_NAME)


def seeded_rng(seed: Optional[int] = None) -> Callable[[], float]:
    """An RNG function returning floats in [0, 1), reproducible for a given seed."""
    return random.Random(seed).random
