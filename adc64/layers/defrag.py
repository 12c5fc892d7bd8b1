"""Reassembly of fragmented MStream frames, delivered strictly in frame order."""

from __future__ import annotations

import threading
from typing import Callable

from adc64 import log
from adc64.layers.mstream import MStreamFragment, Subtype

MAX_FRAGMENT_ID = 0xFFFF


class FragmentBuilder:
    """Collects the parts of one MStream frame until it can be assembled."""

    def __init__(self, manager: FragmentBuilderManager, fragment_id: int) -> None:
        self._manager = manager
        self.fragment_id = fragment_id
        self._reset_state()

    def _reset_state(self) -> None:
        self.free = True
        self.device_id = 0
        self.flags = 0
        self.subtype: int = Subtype.TRIGGER
        self.parts: list[MStreamFragment] = []
        self.highest = 0
        self.total_length = 0
        self.last_fragment_received = False
        self.completed = False

    def clear(self) -> None:
        """Drop all parts and return to the free state."""
        log.info("Clear fragment builder: %s %d", self._manager.device_name, self.fragment_id)
        self._reset_state()

    def close_fragment(self) -> None:
        """Assemble the parts, decode the result and hand it on; always clears."""
        name = self._manager.device_name
        log.info("Close fragment: %s %d", name, self.fragment_id)
        try:
            chunks = []
            current_offset = 0
            for part in self.parts:
                if part.fragment_offset != current_offset:
                    log.error(
                        "Overlapping fragment or hole found: %s fragment: %d",
                        name,
                        self.fragment_id,
                    )
                    return
                log.debug(
                    "CloseFragment: %s fragment: %d offset: %d",
                    name,
                    self.fragment_id,
                    part.fragment_offset,
                )
                chunks.append(bytes(part.data))
                current_offset = (current_offset + part.fragment_length) & 0xFFFF

            assembled = MStreamFragment(
                fragment_length=self.highest,
                subtype=self.subtype,
                flags=self.flags,
                device_id=self.device_id,
                fragment_id=self.fragment_id,
                fragment_offset=0,
                data=b"".join(chunks),
            )
            assembled.last_fragment = True
            try:
                assembled.decode_payload()
            except ValueError as exc:
                log.error(
                    "Error while decoding fragment payload: %s %d error: %s",
                    name,
                    self.fragment_id,
                    exc,
                )
                return
            self._manager._deliver(assembled, self.fragment_id)
        finally:
            self.clear()

    def set_fragment(self, fragment: MStreamFragment) -> None:
        """Add one part; closes the frame once complete and next in order."""
        if self.free:
            self.free = False
            self.device_id = fragment.device_id
            self.flags = fragment.flags
            self.subtype = fragment.subtype

        if fragment.fragment_offset >= self.highest:
            self.parts.append(fragment)
        else:
            for index, part in enumerate(self.parts):
                if fragment.fragment_offset == part.fragment_offset:
                    log.debug(
                        "Fragment duplication: %s %d",
                        self._manager.device_name,
                        self.fragment_id,
                    )
                    return
                if fragment.fragment_offset < part.fragment_offset:
                    self.parts.insert(index, fragment)
                    break

        end = (fragment.fragment_offset + fragment.fragment_length) & 0xFFFF
        if self.highest < end:
            self.highest = end
        self.total_length = (self.total_length + fragment.fragment_length) & 0xFFFF

        log.debug(
            "Fragment builder: %s %d state: count: %d highest: %d total: %d",
            self._manager.device_name,
            self.fragment_id,
            len(self.parts),
            self.highest,
            self.total_length,
        )

        if fragment.last_fragment:
            self.last_fragment_received = True

        # With the last part in and no gaps, the total equals the end of the frame.
        if self.last_fragment_received and self.highest == self.total_length:
            log.info("Fragment completed: %s %d", self._manager.device_name, self.fragment_id)
            self.completed = True

        next_id = (self._manager.last_closed_fragment + 1) & MAX_FRAGMENT_ID
        if self.completed and next_id == self.fragment_id:
            self.close_fragment()


class FragmentBuilderManager:
    """Routes fragments of one device to per-frame builders and emits assembled frames."""

    def __init__(self, device_name: str, on_close: Callable[[MStreamFragment], None]) -> None:
        log.info("Creating FragmentBuilderManager: %s", device_name)
        self.device_name = device_name
        self._on_close = on_close
        self._lock = threading.RLock()
        self._builders: dict[int, FragmentBuilder] = {}
        self.last_closed_fragment = MAX_FRAGMENT_ID
        self.reset()

    def __getitem__(self, fragment_id: int) -> FragmentBuilder:
        """Return the builder for ``fragment_id``."""
        if not 0 <= fragment_id <= MAX_FRAGMENT_ID:
            raise KeyError(fragment_id)
        with self._lock:
            builder = self._builders.get(fragment_id)
            if builder is None:
                builder = FragmentBuilder(self, fragment_id)
                self._builders[fragment_id] = builder
            return builder

    def reset(self) -> None:
        """Discard all builders; the next frame expected is frame 0."""
        with self._lock:
            log.info("Initializing fragment builder manager: %s", self.device_name)
            self._builders.clear()
            self._set_last_closed(MAX_FRAGMENT_ID)

    def _set_last_closed(self, fragment_id: int) -> None:
        log.info("Set last closed fragment: %s %d", self.device_name, fragment_id)
        self.last_closed_fragment = fragment_id

    def _deliver(self, assembled: MStreamFragment, fragment_id: int) -> None:
        self._on_close(assembled)
        self._set_last_closed(fragment_id)

    def set_fragment(self, fragment: MStreamFragment) -> None:
        """Hand one received fragment part to the builder of its frame."""
        log.info(
            "Setting fragment part: %s %d offset: %d length: %d last: %s",
            self.device_name,
            fragment.fragment_id,
            fragment.fragment_offset,
            fragment.fragment_length,
            fragment.last_fragment,
        )
        with self._lock:
            self[fragment.fragment_id].set_fragment(fragment)