"""Nullifier derivation and proof shaping for disclosure proofs.

A disclosure proof arrives as ``{a, b, c}`` plus a fixed-length vector of
public signals. The layout of that vector is fixed by the disclosure circuit;
only two of its entries matter to the relay:

* the nullifier, stable for one real identity within one scope, and
* the user identifier the identity wallet bound the proof to.
"""
from typing import Any, Sequence, Tuple

from errors import InvalidProofShape

PUBLIC_SIGNALS_LENGTH = 21
NULLIFIER_INDEX = 7
USER_IDENTIFIER_INDEX = 20

FIELD_LIMIT = 2 ** 256


def parse_signal(value: Any) -> int:
    """Parse one field element given as an int, a decimal string or a 0x hex string."""
    if isinstance(value, bool):
        raise InvalidProofShape(f"Invalid field element: {value!r}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                number = int(text, 16)
            else:
                number = int(text, 10)
        except ValueError:
            raise InvalidProofShape(f"Invalid field element: {value!r}")
    else:
        raise InvalidProofShape(f"Invalid field element: {value!r}")

    if number < 0 or number >= FIELD_LIMIT:
        raise InvalidProofShape(f"Field element out of range: {value!r}")
    return number


def parse_public_signals(public_signals: Any) -> list:
    if not isinstance(public_signals, (list, tuple)):
        raise InvalidProofShape("publicSignals must be a list")
    if len(public_signals) != PUBLIC_SIGNALS_LENGTH:
        raise InvalidProofShape(
            f"publicSignals must contain {PUBLIC_SIGNALS_LENGTH} values, got {len(public_signals)}"
        )
    return [parse_signal(value) for value in public_signals]


def derive_nullifier(public_signals: Sequence[Any]) -> int:
    return parse_public_signals(public_signals)[NULLIFIER_INDEX]


def nullifier_hex(nullifier: int) -> str:
    return "0x" + format(nullifier, "064x")


def user_identifier(public_signals: Sequence[Any]) -> str:
    """Disclosed user identifier as a 20-byte hex address."""
    value = parse_public_signals(public_signals)[USER_IDENTIFIER_INDEX]
    return "0x" + format(value % (1 << 160), "040x")


def _pair(value: Any, name: str) -> list:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidProofShape(f"proof.{name} must be a pair")
    return [parse_signal(v) for v in value]


def format_proof(proof: Any, public_signals: Sequence[Any]) -> Tuple[list, list, list, list]:
    """Build the verifier argument ``(a, b, c, pubSignals)``.

    The inner pairs of ``b`` are swapped: the proving system serializes G2
    coordinates in the opposite order from the one the on-chain verifier reads.
    """
    if not isinstance(proof, dict):
        raise InvalidProofShape("proof must be an object with a, b and c")
    for key in ("a", "b", "c"):
        if key not in proof:
            raise InvalidProofShape(f"proof.{key} is required")

    b = proof["b"]
    if not isinstance(b, (list, tuple)) or len(b) != 2:
        raise InvalidProofShape("proof.b must be a 2x2 matrix")
    b_rows = [_pair(row, "b") for row in b]

    a = _pair(proof["a"], "a")
    c = _pair(proof["c"], "c")
    swapped = [
        [b_rows[0][1], b_rows[0][0]],
        [b_rows[1][1], b_rows[1][0]],
    ]
    return a, swapped, c, parse_public_signals(public_signals)
