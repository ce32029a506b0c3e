"""Termination of the emulated program."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ProgramExit(Exception):
    """The emulated program ended, normally or because of an emulation error."""

    def __init__(self, status: int) -> None:
        super().__init__(f"program exited with status {status}")
        self.status = status


def exit_or_restart(status: int) -> None:
    """End the emulated program with the given status by raising ProgramExit."""
    logger.info("Exit program with status code %i", status)
    raise ProgramExit(status)