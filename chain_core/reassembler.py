"""
Size inference and reassembly.

The nominal chunk size is never stored. It is inferred after the walk from
the terminal chunk: un-padded length + padding. Each chunk's payload then has
to fill that size exactly, once its own padding is counted.

Traversal runs from the last file segment to the first, so the stream is the
traversal payloads in reverse:

    traversal: "FGHI", "BCDE", "A" (terminal, padding=3)   nominal = 4
    stream:    "A" + "BCDE" + "FGHI" = "ABCDEFGHI"

Any chunk may be the padded one; a short tail works the same way:

    traversal: "IJ" (padding=2), "EFGH", "ABCD" (terminal)  nominal = 4
    stream:    "ABCDEFGHIJ"
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import DegenerateChain, InconsistentChain


def infer_nominal_size(terminal_length: int, terminal_padding: int) -> int:
    if terminal_length < 0 or terminal_padding < 0:
        raise ValueError("lengths must be non-negative")
    return terminal_length + terminal_padding


def reassemble(
    payloads: Sequence[bytes],
    paddings: Sequence[int],
    terminal_padding: int | None = None,
) -> bytes:
    """
    Rebuild the original stream from payloads in traversal order.

    Args:
        payloads: un-padded payloads, tail first, terminal last
        paddings: padding declared by each chunk, same order
        terminal_padding: defaults to paddings[-1]

    Raises:
        DegenerateChain: nominal size is zero while more than one chunk exists
        InconsistentChain: a chunk's length + padding differs from the nominal size
    """
    if not payloads:
        raise ValueError("No payloads to reassemble")
    if len(payloads) != len(paddings):
        raise ValueError("payloads and paddings differ in length")

    if terminal_padding is None:
        terminal_padding = paddings[-1]

    # single chunk: its un-padded payload is the whole stream, even with nominal size 0
    if len(payloads) == 1:
        return bytes(payloads[0])

    nominal = infer_nominal_size(len(payloads[-1]), terminal_padding)
    if nominal == 0:
        raise DegenerateChain(
            f"Nominal chunk size is 0 with {len(payloads)} chunks", step=len(payloads) - 1
        )

    for step, (payload, padding) in enumerate(zip(payloads, paddings)):
        if len(payload) + padding != nominal:
            raise InconsistentChain(
                f"Chunk holds {len(payload)}+{padding} bytes, nominal size is {nominal}",
                step=step,
            )

    return b"".join(reversed(payloads))


__all__ = ["infer_nominal_size", "reassemble"]
