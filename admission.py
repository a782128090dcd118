"""Admission controller: relays disclosure proofs to the on-chain registry.

One verification attempt moves through::

    RECEIVED -> NULLIFIER_DERIVED -> SUBMITTED -> CONFIRMED | REJECTED | INDETERMINATE

Nothing here is retried; a rejected attempt needs a fresh proof from the
caller. Admin and blacklist state always comes from the chain.
"""
import enum
import logging
import time
from typing import Any, List, Optional

from web3 import Web3

from abi import VOTING_ABI, VOTING_FACTORY_ABI
from chain import ChainGateway, gas_price_wei
from errors import Indeterminate, InvalidRequest, VerificationFailed
from nullifier import derive_nullifier, format_proof, nullifier_hex, parse_signal
from tally import normalize_percentages

logger = logging.getLogger(__name__)


class AdmissionState(str, enum.Enum):
    RECEIVED = "received"
    NULLIFIER_DERIVED = "nullifier_derived"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    INDETERMINATE = "indeterminate"


class AdmissionResult:
    def __init__(self):
        self.state = AdmissionState.RECEIVED
        self.nullifier: Optional[int] = None
        self.tx_hash: Optional[str] = None
        self.block_number: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "nullifier": nullifier_hex(self.nullifier) if self.nullifier is not None else None,
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
        }


def _require_proof(proof: Any, public_signals: Any):
    if not proof or not public_signals:
        raise InvalidRequest("Proof and publicSignals are required")


class AdmissionController:
    def __init__(self, gateway: ChainGateway, factory_address: str, gas_price_gwei: int = 30):
        self.gateway = gateway
        self.factory_address = factory_address
        self.gas_price = gas_price_wei(gas_price_gwei)

    def _factory(self):
        return self.gateway.contract(self.factory_address, VOTING_FACTORY_ABI)

    def _voting(self, address: str):
        return self.gateway.contract(address, VOTING_ABI)

    def _submit(self, call, result: AdmissionResult) -> AdmissionResult:
        gas_limit = self.gateway.estimate_gas(call)
        result.state = AdmissionState.SUBMITTED
        try:
            receipt = self.gateway.send(call, self.gas_price, gas_limit)
        except VerificationFailed as e:
            result.state = AdmissionState.REJECTED
            result.tx_hash = e.tx_hash
            raise
        except Indeterminate as e:
            result.state = AdmissionState.INDETERMINATE
            result.tx_hash = e.tx_hash
            raise
        result.state = AdmissionState.CONFIRMED
        result.tx_hash = Web3.to_hex(receipt["transactionHash"])
        result.block_number = receipt["blockNumber"]
        return result

    def _admit(self, proof: Any, public_signals: Any):
        _require_proof(proof, public_signals)
        result = AdmissionResult()
        result.nullifier = derive_nullifier(public_signals)
        result.state = AdmissionState.NULLIFIER_DERIVED
        logger.info("Received proof for nullifier %s", nullifier_hex(result.nullifier))
        return result, format_proof(proof, public_signals)

    def verify(self, proof: Any, public_signals: Any) -> AdmissionResult:
        """Relay a disclosure proof to the registry's verification entry point.

        The registry does not say why it rejects a proof: an invalid proof, a
        blacklisted nullifier and a missing disclosure all revert alike.
        """
        result, args = self._admit(proof, public_signals)
        factory = self._factory()
        return self._submit(factory.functions.UserVerification(args), result)

    def create_voting_contract(
        self,
        deadline: int,
        option_count: int,
        allow_multiple_choices: bool,
        has_age_constraint: bool,
        min_age: int,
        proof: Any,
        public_signals: Any,
    ) -> AdmissionResult:
        if deadline <= int(time.time()):
            raise InvalidRequest("deadline must be in the future")
        if option_count < 2:
            raise InvalidRequest("optionCount must be at least 2")
        if min_age < 0:
            raise InvalidRequest("minAge must not be negative")
        if min_age and not has_age_constraint:
            raise InvalidRequest("minAge requires hasAgeConstraint")

        result, args = self._admit(proof, public_signals)
        factory = self._factory()
        call = factory.functions.createVotingContract(
            deadline, option_count, allow_multiple_choices, has_age_constraint, min_age, args
        )
        return self._submit(call, result)

    def vote(self, contract_address: str, options: List[int], proof: Any, public_signals: Any) -> AdmissionResult:
        if not options:
            raise InvalidRequest("options must not be empty")
        if any(option < 0 for option in options):
            raise InvalidRequest("options must not be negative")
        if len(set(options)) != len(options):
            raise InvalidRequest("options must be unique")

        voting = self._voting(contract_address)
        result, args = self._admit(proof, public_signals)
        return self._submit(voting.functions.vote(args, options), result)

    def has_voting_power(self, contract_address: str, proof: Any, public_signals: Any) -> int:
        voting = self._voting(contract_address)
        _require_proof(proof, public_signals)
        return self.gateway.call(voting.functions.hasVotingPower(format_proof(proof, public_signals)))

    def proposal(self, contract_address: str) -> dict:
        voting = self._voting(contract_address)
        votes, is_active, time_left = self.gateway.call(voting.functions.getProposal())
        votes = list(votes)
        return {
            "address": Web3.to_checksum_address(contract_address),
            "votes": votes,
            "total_votes": sum(votes),
            "percentages": normalize_percentages(votes),
            "is_active": is_active,
            "time_left": time_left,
        }

    # Registry management

    def voting_contracts(self) -> List[str]:
        return list(self.gateway.call(self._factory().functions.getVotingContracts()))

    def is_blacklisted(self, nullifier: Any) -> bool:
        return self.gateway.call(self._factory().functions.blacklist(parse_signal(nullifier)))

    def is_admin(self, address: str) -> bool:
        if not Web3.is_address(address):
            raise InvalidRequest(f"Invalid address: {address!r}")
        return self.gateway.call(self._factory().functions.admins(Web3.to_checksum_address(address)))

    def set_blacklist(self, nullifier: Any, status: bool) -> AdmissionResult:
        result = AdmissionResult()
        result.nullifier = parse_signal(nullifier)
        result.state = AdmissionState.NULLIFIER_DERIVED
        call = self._factory().functions.setBlacklist(result.nullifier, status)
        logger.info("Setting blacklist of %s to %s", nullifier_hex(result.nullifier), status)
        return self._submit(call, result)

    def add_admin(self, address: str) -> AdmissionResult:
        return self._manage_admin("addAdmin", address)

    def remove_admin(self, address: str) -> AdmissionResult:
        return self._manage_admin("removeAdmin", address)

    def _manage_admin(self, function: str, address: str) -> AdmissionResult:
        if not Web3.is_address(address):
            raise InvalidRequest(f"Invalid address: {address!r}")
        factory = self._factory()
        call = getattr(factory.functions, function)(Web3.to_checksum_address(address))
        logger.info("%s %s", function, address)
        return self._submit(call, AdmissionResult())
