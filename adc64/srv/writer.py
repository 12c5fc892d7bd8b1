"""Binary file sink for serialized MPD events."""

from __future__ import annotations

import os
from typing import Union

from adc64 import log


class Writer:
    """Writes bytes to a newly created file; ``flush`` syncs and closes it."""

    def __init__(self, filename: Union[str, os.PathLike]) -> None:
        try:
            self._file = open(filename, "wb")
        except OSError:
            log.error("Error while creating file: %s", filename)
            raise
        self.filename = filename

    def __enter__(self) -> Writer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.flush()

    def write(self, buf: bytes) -> int:
        """Append ``buf`` and return the number of bytes written."""
        return self._file.write(buf)

    def flush(self) -> None:
        """Push the data to disk and close the file."""
        if self._file.closed:
            return
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()