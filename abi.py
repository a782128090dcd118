"""Interfaces of the on-chain registry (voting factory) and per-poll voting contracts."""

# Disclosure proof as the verifier expects it; b is already column-swapped.
PROOF_TUPLE = {
    "name": "proof",
    "type": "tuple",
    "internalType": "struct IVcAndDiscloseCircuitVerifier.VcAndDiscloseProof",
    "components": [
        {"internalType": "uint256[2]", "name": "a", "type": "uint256[2]"},
        {"internalType": "uint256[2][2]", "name": "b", "type": "uint256[2][2]"},
        {"internalType": "uint256[2]", "name": "c", "type": "uint256[2]"},
        {"internalType": "uint256[21]", "name": "pubSignals", "type": "uint256[21]"},
    ],
}


def _view(name, inputs=(), outputs=()):
    return {
        "inputs": list(inputs),
        "name": name,
        "outputs": list(outputs),
        "stateMutability": "view",
        "type": "function",
    }


def _nonpayable(name, inputs=(), outputs=()):
    return {
        "inputs": list(inputs),
        "name": name,
        "outputs": list(outputs),
        "stateMutability": "nonpayable",
        "type": "function",
    }


def _event(name, inputs):
    return {"anonymous": False, "inputs": inputs, "name": name, "type": "event"}


def _arg(name, type_, indexed=None):
    arg = {"name": name, "type": type_}
    if indexed is not None:
        arg["indexed"] = indexed
    return arg


VOTING_FACTORY_ABI = [
    # Events
    _event("VotingContractCreated", [
        _arg("votingContract", "address", True),
        _arg("nullifier", "uint256", False),
    ]),
    _event("BlacklistStatusUpdated", [
        _arg("nullifier", "uint256", True),
        _arg("status", "bool", False),
    ]),
    _event("AdminAdded", [_arg("admin", "address", True)]),
    _event("AdminRemoved", [_arg("admin", "address", True)]),
    # State
    _view("owner", outputs=[_arg("", "address")]),
    _view("blacklist", [_arg("nullifier", "uint256")], [_arg("", "bool")]),
    _view("admins", [_arg("admin", "address")], [_arg("", "bool")]),
    _view("votingContracts", [_arg("index", "uint256")], [_arg("", "address")]),
    # Functions
    _nonpayable("UserVerification", [PROOF_TUPLE], [_arg("", "uint256")]),
    _nonpayable(
        "createVotingContract",
        [
            _arg("deadline", "uint256"),
            _arg("optionCount", "uint256"),
            _arg("allowMultipleChoices", "bool"),
            _arg("hasAgeConstraint", "bool"),
            _arg("minAge", "uint256"),
            PROOF_TUPLE,
        ],
        [_arg("", "address")],
    ),
    _nonpayable("setBlacklist", [_arg("nullifier", "uint256"), _arg("status", "bool")]),
    _nonpayable("addAdmin", [_arg("admin", "address")]),
    _nonpayable("removeAdmin", [_arg("admin", "address")]),
    _view("getVotingContracts", outputs=[_arg("", "address[]")]),
]

VOTING_ABI = [
    _event("Voted", [
        _arg("nullifier", "uint256", True),
        _arg("options", "uint256[]", False),
    ]),
    _view("factory", outputs=[_arg("", "address")]),
    _view("deadline", outputs=[_arg("", "uint256")]),
    _view("optionCount", outputs=[_arg("", "uint256")]),
    _view("allowMultipleChoices", outputs=[_arg("", "bool")]),
    _view("voteCounts", [_arg("index", "uint256")], [_arg("", "uint256")]),
    _view("hasVoted", [_arg("nullifier", "uint256")], [_arg("", "bool")]),
    _nonpayable("hasVotingPower", [PROOF_TUPLE], [_arg("", "uint256")]),
    _nonpayable("vote", [PROOF_TUPLE, _arg("options", "uint256[]")]),
    _view(
        "getProposal",
        outputs=[
            _arg("votes", "uint256[]"),
            _arg("isActive", "bool"),
            _arg("timeLeft", "uint256"),
        ],
    ),
]
