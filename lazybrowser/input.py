"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into binding tokens
(``"a"``, ``"<Esc>"``, ``"<C-p>"``, ``"<Up>"``...). Handles ESC-sequence
timing so a lone Escape is reported without waiting for another key.
"""

from __future__ import annotations

import os
import select

from .keymap.tokens import BACKSPACE, DOWN, ENTER, ESCAPE, LEFT, RIGHT, TAB, UP

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_CSI_FINALS = {
    b"A": UP,
    b"B": DOWN,
    b"C": RIGHT,
    b"D": LEFT,
    b"H": "<Home>",
    b"F": "<End>",
}
_CSI_TILDE = {
    b"1": "<Home>",
    b"3": "<Del>",
    b"4": "<End>",
    b"5": "<PageUp>",
    b"6": "<PageDown>",
    b"7": "<Home>",
    b"8": "<End>",
}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _utf8_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


def _control_token(code: int) -> str | None:
    if code in (0x0D, 0x0A):
        return ENTER
    if code == 0x09:
        return TAB
    if code in (0x08, 0x7F):
        return BACKSPACE
    if code == 0x00:
        return "<C-Space>"
    if 0x01 <= code <= 0x1A:
        return f"<C-{chr(code + 0x60)}>"
    return None


def _decode_csi(fd: int) -> str:
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return ESCAPE
    if seq in _CSI_FINALS:
        return _CSI_FINALS[seq]
    params = b""
    while seq is not None and (seq.isdigit() or seq == b";"):
        params += seq
        if len(params) > 16:
            return ESCAPE
        seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return ESCAPE
    if seq == b"~":
        return _CSI_TILDE.get(params.split(b";")[0], ESCAPE)
    if seq in _CSI_FINALS:
        return _CSI_FINALS[seq]
    return ESCAPE


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Return the next token, or ``""`` when ``timeout_ms`` elapses first."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""
        ch = os.read(fd, 1)
        if not ch:
            return ""

    code = ch[0]
    if code != 0x1B:
        control = _control_token(code)
        if control is not None:
            return control
        needed = _utf8_length(code) - 1
        data = ch
        while needed > 0:
            more = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
            if more is None:
                break
            data += more
            needed -= 1
        return data.decode("utf-8", errors="replace")

    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return ESCAPE
    if seq in {b"[", b"O"}:
        return _decode_csi(fd)
    if seq == b"\x1b":
        _PENDING_BYTES.append(seq)
        return ESCAPE
    if 0x20 < seq[0] < 0x7F:
        return f"<M-{seq.decode('ascii')}>"
    _PENDING_BYTES.append(seq)
    return ESCAPE
