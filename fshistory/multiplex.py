"""The DOS multiplex interrupt (int 2Fh)."""

from __future__ import annotations

import logging

from .errors import exit_or_restart
from .machine import ByteReg, Machine

logger = logging.getLogger(__name__)


def handle_multiplex(machine: Machine) -> None:
    """Answer multiplex requests; only the installation check is known."""
    regs = machine.regs
    ah = regs.get_byte(ByteReg.AH)
    al = regs.get_byte(ByteReg.AL)
    if al == 0x00:
        regs.set_byte(ByteReg.AL, 0x00)  # nothing installed
        return
    logger.error("DOS Multiplex: Unknown function ah=%02x al=%02x", ah, al)
    exit_or_restart(1)