from __future__ import annotations

import sys
from typing import TextIO

import segno


class TerminalQRPrinter:
    """Prints WhatsApp login QR codes to the operator's terminal.

    Uses segno's compact block rendering so a full WhatsApp payload fits in a
    normal terminal window. Registered as a QR listener on the adapter.
    """

    def __init__(self, stdout: TextIO | None = None, compact: bool = True) -> None:
        self._stdout = stdout or sys.stdout
        self._compact = compact

    def print_qr(self, payload: str) -> None:
        """Write the QR code for a payload, preceded by a scan prompt."""
        self._stdout.write("\nQR code received! Scan this with your WhatsApp:\n")
        segno.make_qr(payload).terminal(out=self._stdout, compact=self._compact)
        self._stdout.write("\n")
        self._stdout.flush()
