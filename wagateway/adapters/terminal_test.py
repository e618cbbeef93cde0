from __future__ import annotations

import io

from wagateway.adapters.terminal import TerminalQRPrinter


def test_print_qr_writes_prompt_and_code() -> None:
    stdout = io.StringIO()
    printer = TerminalQRPrinter(stdout=stdout)
    printer.print_qr("2@abcdef,ghijkl,mnopqr")
    output = stdout.getvalue()
    assert "Scan this with your WhatsApp" in output
    # The QR art spans many lines after the prompt
    assert len(output.splitlines()) > 10


def test_compact_output_is_shorter() -> None:
    compact, full = io.StringIO(), io.StringIO()
    TerminalQRPrinter(stdout=compact, compact=True).print_qr("payload")
    TerminalQRPrinter(stdout=full, compact=False).print_qr("payload")
    assert len(compact.getvalue().splitlines()) < len(full.getvalue().splitlines())
