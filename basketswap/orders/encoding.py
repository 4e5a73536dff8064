from __future__ import annotations

from typing import Sequence

from ..types import OrderFragment, TypedArg


def to_bytes32(text: str) -> str:
    """Right-pad the ASCII hex of ``text`` to a 32 byte word."""

    raw = text.encode("ascii")
    if len(raw) > 32:
        raise ValueError(f"operator name too long for bytes32: {text!r}")
    return "0x" + raw.hex().ljust(64, "0")


def build_order_fragment(operator: str, output_token: str, args: Sequence[TypedArg]) -> OrderFragment:
    """Default call encoder: keep typed arguments for the batch encoder to ABI-pack."""

    return OrderFragment(
        operator=to_bytes32(operator),
        token=output_token,
        call_args=tuple((kind, value) for kind, value in args),
        commit=True,
    )


__all__ = ["build_order_fragment", "to_bytes32"]
