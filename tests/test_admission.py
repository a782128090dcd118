import time
from unittest.mock import MagicMock

import pytest
from web3 import Web3

from admission import AdmissionController, AdmissionState
from chain import ChainGateway
from conftest import make_proof, make_signals
from errors import (
    Indeterminate,
    InvalidContractAddress,
    InvalidProofShape,
    InvalidRequest,
    VerificationFailed,
)

FACTORY = "0x" + "fa" * 20
VOTING = "0x" + "b0" * 20


class FakeCall:
    def __init__(self, address, name, args):
        self.address = address
        self.name = name
        self.args = args


class FakeFunctions:
    def __init__(self, address):
        self.address = address

    def __getattr__(self, name):
        return lambda *args: FakeCall(self.address, name, args)


class FakeContract:
    def __init__(self, address):
        self.address = address
        self.functions = FakeFunctions(address)


class FakeRegistry(ChainGateway):
    """Gateway that plays the registry: one admission per nullifier, blacklist enforced."""

    def __init__(self):
        super().__init__("http://localhost:8545", "0x" + "11" * 32, web3=MagicMock())
        self.sent = []
        self.seen = set()
        self.blacklist = set()
        self.reads = {}
        self.timeout_next = False

    def contract(self, address, abi):
        if not address or not Web3.is_address(address):
            raise InvalidContractAddress(f"Invalid contract address: {address!r}")
        return FakeContract(address)

    def estimate_gas(self, call):
        return 250_000

    def send(self, call, gas_price, gas_limit):
        self.sent.append((call, gas_price, gas_limit))
        tx_hash = "0x" + format(len(self.sent), "064x")
        if self.timeout_next:
            raise Indeterminate(tx_hash)
        if call.name in ("UserVerification", "vote", "createVotingContract"):
            proof = call.args[0] if call.name != "createVotingContract" else call.args[-1]
            nullifier = proof[3][7]
            key = (call.address, call.name, nullifier)
            if nullifier in self.blacklist or key in self.seen:
                raise VerificationFailed(f"Transaction {tx_hash} reverted", tx_hash=tx_hash)
            self.seen.add(key)
        elif call.name == "setBlacklist":
            nullifier, status = call.args
            (self.blacklist.add if status else self.blacklist.discard)(nullifier)
        return {"status": 1, "blockNumber": 10, "transactionHash": bytes.fromhex(tx_hash[2:])}

    def call(self, call):
        return self.reads[call.name]


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def controller(registry):
    return AdmissionController(registry, FACTORY, gas_price_gwei=30)


def test_verify_confirms(controller, registry):
    result = controller.verify(make_proof(), make_signals(nullifier=99))
    assert result.state == AdmissionState.CONFIRMED
    assert result.nullifier == 99
    assert result.tx_hash == "0x" + format(1, "064x")
    assert result.block_number == 10

    call, gas_price, gas_limit = registry.sent[0]
    assert call.name == "UserVerification"
    assert call.address == FACTORY
    a, b, c, signals = call.args[0]
    assert b == [[4, 3], [6, 5]]
    assert signals[7] == 99
    assert gas_price == 30 * 10 ** 9
    assert gas_limit == 250_000


def test_verify_same_proof_twice(controller):
    proof, signals = make_proof(), make_signals(nullifier=5)
    assert controller.verify(proof, signals).state == AdmissionState.CONFIRMED
    with pytest.raises(VerificationFailed) as excinfo:
        controller.verify(proof, signals)
    assert excinfo.value.reason == "proof invalid, nullifier blacklisted, or disclosure incomplete"


def test_verify_blacklisted_nullifier(controller):
    controller.set_blacklist("77", True)
    with pytest.raises(VerificationFailed):
        controller.verify(make_proof(), make_signals(nullifier=77))
    controller.set_blacklist("77", False)
    assert controller.verify(make_proof(), make_signals(nullifier=77)).state == AdmissionState.CONFIRMED


@pytest.mark.parametrize("proof,signals", [(None, make_signals()), (make_proof(), None), ({}, []), (None, None)])
def test_verify_requires_proof_and_signals(controller, registry, proof, signals):
    with pytest.raises(InvalidRequest):
        controller.verify(proof, signals)
    assert registry.sent == []


def test_verify_rejects_short_signals_before_submitting(controller, registry):
    with pytest.raises(InvalidProofShape):
        controller.verify(make_proof(), ["1"] * 10)
    assert registry.sent == []


def test_verify_with_bad_factory_address(registry):
    controller = AdmissionController(registry, "not-an-address")
    with pytest.raises(InvalidContractAddress):
        controller.verify(make_proof(), make_signals())
    assert registry.sent == []


def test_verify_timeout_is_indeterminate(controller, registry):
    registry.timeout_next = True
    with pytest.raises(Indeterminate) as excinfo:
        controller.verify(make_proof(), make_signals())
    assert excinfo.value.tx_hash.startswith("0x")


def test_create_voting_contract(controller, registry):
    deadline = int(time.time()) + 3600
    result = controller.create_voting_contract(deadline, 3, False, True, 18, make_proof(), make_signals())
    assert result.state == AdmissionState.CONFIRMED
    call = registry.sent[0][0]
    assert call.name == "createVotingContract"
    assert call.args[:5] == (deadline, 3, False, True, 18)


@pytest.mark.parametrize(
    "deadline_offset,option_count,has_age,min_age",
    [(-10, 3, False, 0), (3600, 1, False, 0), (3600, 2, True, -1), (3600, 2, False, 18)],
)
def test_create_voting_contract_validation(controller, registry, deadline_offset, option_count, has_age, min_age):
    with pytest.raises(InvalidRequest):
        controller.create_voting_contract(
            int(time.time()) + deadline_offset, option_count, False, has_age, min_age, make_proof(), make_signals()
        )
    assert registry.sent == []


def test_vote_once_per_nullifier(controller, registry):
    assert controller.vote(VOTING, [0], make_proof(), make_signals(nullifier=3)).state == AdmissionState.CONFIRMED
    with pytest.raises(VerificationFailed):
        controller.vote(VOTING, [1], make_proof(), make_signals(nullifier=3))
    call = registry.sent[0][0]
    assert call.address == VOTING
    assert call.args[1] == [0]


@pytest.mark.parametrize("options", [[], [-1], [1, 1]])
def test_vote_validates_options(controller, options):
    with pytest.raises(InvalidRequest):
        controller.vote(VOTING, options, make_proof(), make_signals())


def test_vote_bad_contract_address(controller, registry):
    with pytest.raises(InvalidContractAddress):
        controller.vote("0x1234", [0], make_proof(), make_signals())
    assert registry.sent == []


def test_proposal_normalizes_votes(controller, registry):
    registry.reads["getProposal"] = ([1, 1, 1], True, 600)
    proposal = controller.proposal(VOTING)
    assert proposal["votes"] == [1, 1, 1]
    assert proposal["total_votes"] == 3
    assert proposal["percentages"] == [34, 33, 33]
    assert proposal["is_active"] is True
    assert proposal["time_left"] == 600


def test_registry_reads(controller, registry):
    registry.reads.update({"getVotingContracts": [VOTING], "blacklist": True, "admins": False, "hasVotingPower": 1})
    assert controller.voting_contracts() == [VOTING]
    assert controller.is_blacklisted("0x10") is True
    assert controller.is_admin("0x" + "cd" * 20) is False
    assert controller.has_voting_power(VOTING, make_proof(), make_signals()) == 1


def test_admin_management(controller, registry):
    admin = "0x" + "cd" * 20
    assert controller.add_admin(admin).state == AdmissionState.CONFIRMED
    assert controller.remove_admin(admin).state == AdmissionState.CONFIRMED
    names = [call.name for call, _, _ in registry.sent]
    assert names == ["addAdmin", "removeAdmin"]
    assert registry.sent[0][0].args == (Web3.to_checksum_address(admin),)
    with pytest.raises(InvalidRequest):
        controller.add_admin("nope")


def test_result_to_dict(controller):
    data = controller.verify(make_proof(), make_signals(nullifier=255)).to_dict()
    assert data["state"] == "confirmed"
    assert data["nullifier"] == "0x" + "0" * 62 + "ff"
