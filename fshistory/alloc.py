"""The emulated DOS memory allocator: a simple bump allocator of paragraphs."""

from __future__ import annotations

import logging

from .errors import exit_or_restart

logger = logging.getLogger(__name__)

FIRST_FREE_SEG = 0x01A2
MEMORY_END_SEG = 0xA000
AVAILABLE_END_SEG = 0x9FFE


class Allocator:
    """Hands out conventional memory in paragraphs from a growing segment."""

    def __init__(self) -> None:
        self.next_free_seg = FIRST_FREE_SEG
        self.last_alloc_seg = 0
        self.freed_segments: set[int] = set()
        self.reset()

    def reset(self) -> None:
        self.next_free_seg = FIRST_FREE_SEG
        self.last_alloc_seg = 0
        self.freed_segments = set()

    def available(self) -> int:
        """Paragraphs left below video memory."""
        return (AVAILABLE_END_SEG - self.next_free_seg) & 0xFFFF

    def allocate(self, paragraphs: int) -> int:
        """Allocate paragraphs and return the segment of the block."""
        self.last_alloc_seg = self.next_free_seg
        self.next_free_seg = (self.next_free_seg + paragraphs) & 0xFFFF
        if self.next_free_seg >= MEMORY_END_SEG:
            logger.error("DOS Alloc: Error: Out of memory")
            exit_or_restart(1)
        return self.last_alloc_seg

    def free(self, seg: int) -> None:
        """Record a released block; the memory itself is never reused."""
        self.freed_segments.add(seg & 0xFFFF)
        logger.debug("DOS Alloc: free segment 0x%04x", seg)

    def modify(self, seg: int, paragraphs: int) -> bool:
        """Resize the most recently allocated block; False for any other."""
        if self.last_alloc_seg != seg:
            logger.warning("DOS Alloc: Cannot modify allocated memory block")
            return False
        logger.info(
            "DOS Alloc: currently allocated: %i segments, new %i segments",
            self.next_free_seg - self.last_alloc_seg,
            paragraphs,
        )
        self.next_free_seg = (seg + paragraphs) & 0xFFFF
        return True