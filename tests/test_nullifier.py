import pytest

from conftest import make_proof, make_signals
from errors import InvalidProofShape
from nullifier import (
    derive_nullifier,
    format_proof,
    nullifier_hex,
    parse_signal,
    user_identifier,
)


def test_parse_signal_formats():
    assert parse_signal(5) == 5
    assert parse_signal("42") == 42
    assert parse_signal("0x2a") == 42
    assert parse_signal(" 0X2A ") == 42


@pytest.mark.parametrize("value", ["-1", "abc", "", None, 1.5, True, str(2 ** 256), [1]])
def test_parse_signal_rejects(value):
    with pytest.raises(InvalidProofShape):
        parse_signal(value)


def test_same_signals_same_nullifier():
    signals = make_signals(nullifier=987654321)
    assert derive_nullifier(signals) == 987654321
    assert derive_nullifier(list(signals)) == derive_nullifier(signals)


def test_different_signals_different_nullifier():
    assert derive_nullifier(make_signals(nullifier=1)) != derive_nullifier(make_signals(nullifier=2))


@pytest.mark.parametrize("signals", [[], ["1"] * 20, ["1"] * 22, "not-a-list", None])
def test_short_or_malformed_signals(signals):
    with pytest.raises(InvalidProofShape):
        derive_nullifier(signals)


def test_nullifier_hex_is_fixed_width():
    text = nullifier_hex(255)
    assert text == "0x" + "0" * 62 + "ff"
    assert len(nullifier_hex(2 ** 255)) == 66


def test_user_identifier_is_an_address():
    assert user_identifier(make_signals(user_identifier=0xABCDEF)) == "0x" + "0" * 34 + "abcdef"


def test_format_proof_swaps_b_columns():
    a, b, c, signals = format_proof(make_proof(), make_signals())
    assert a == [1, 2]
    assert b == [[4, 3], [6, 5]]
    assert c == [7, 8]
    assert len(signals) == 21
    assert all(isinstance(s, int) for s in signals)


@pytest.mark.parametrize(
    "proof",
    [
        None,
        "proof",
        {"a": ["1", "2"], "b": [["3", "4"], ["5", "6"]]},
        {"a": ["1"], "b": [["3", "4"], ["5", "6"]], "c": ["7", "8"]},
        {"a": ["1", "2"], "b": [["3", "4"]], "c": ["7", "8"]},
        {"a": ["1", "2"], "b": [["3", "4", "9"], ["5", "6"]], "c": ["7", "8"]},
        {"a": ["1", "2"], "b": [["3", "x"], ["5", "6"]], "c": ["7", "8"]},
    ],
)
def test_format_proof_rejects_bad_shapes(proof):
    with pytest.raises(InvalidProofShape):
        format_proof(proof, make_signals())
