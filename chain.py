"""Chain gateway: submits prepared contract calls through one signing key."""
import logging
import threading
from typing import Optional

from eth_account import Account
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, TimeExhausted, Web3Exception

from errors import GatewayUnavailable, Indeterminate, InvalidContractAddress, NotFound, VerificationFailed

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_GAS_LIMIT = 12_000_000


def gas_price_wei(gwei: int) -> int:
    return Web3.to_wei(gwei, "gwei")


class ChainGateway:
    """Thin wrapper around a JSON-RPC connection and a signing key.

    Holds no state besides the connection, the key and a lock that keeps
    submissions from this key strictly one at a time (nonce ordering).
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        chain_id: Optional[int] = None,
        timeout: int = 120,
        fallback_gas_limit: int = DEFAULT_FALLBACK_GAS_LIMIT,
        gas_margin: int = 120,
        web3: Optional[Web3] = None,
    ):
        self.web3 = web3 or Web3(Web3.HTTPProvider(rpc_url))
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.timeout = timeout
        self.fallback_gas_limit = fallback_gas_limit
        self.gas_margin = gas_margin
        self._lock = threading.Lock()

    @property
    def address(self) -> str:
        return self.account.address

    def contract(self, address: str, abi: list):
        if not address or not Web3.is_address(address):
            raise InvalidContractAddress(f"Invalid contract address: {address!r}")
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def estimate_gas(self, call) -> int:
        try:
            estimated = call.estimate_gas({"from": self.address})
        except Exception as e:
            logger.warning("Gas estimate failed (%s), using fallback limit %d", e, self.fallback_gas_limit)
            return self.fallback_gas_limit
        return estimated * self.gas_margin // 100

    def call(self, call):
        """Run a read-only call."""
        try:
            return call.call({"from": self.address})
        except BadFunctionCallOutput as e:
            raise NotFound(f"No contract answered the call: {e}")
        except ContractLogicError as e:
            raise VerificationFailed(str(e))
        except (OSError, RequestException) as e:
            raise GatewayUnavailable(str(e))
        except (ValueError, Web3Exception) as e:
            logger.warning("Read call failed: %s", e)
            raise GatewayUnavailable(str(e))

    def send(self, call, gas_price: int, gas_limit: int):
        """Submit ``call`` and wait for its receipt.

        Only a receipt with ``status == 1`` counts as a state change.
        """
        params = {"from": self.address, "gas": gas_limit, "gasPrice": gas_price}
        if self.chain_id is not None:
            params["chainId"] = self.chain_id

        with self._lock:
            try:
                params["nonce"] = self.web3.eth.get_transaction_count(self.address, "pending")
                tx = call.build_transaction(params)
                signed = self.account.sign_transaction(tx)
                tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
            except ContractLogicError as e:
                logger.info("Contract rejected call: %s", e)
                raise VerificationFailed(str(e))
            except (OSError, RequestException) as e:
                logger.error("RPC unavailable: %s", e)
                raise GatewayUnavailable(str(e))
            except (ValueError, Web3Exception) as e:
                logger.info("Node rejected transaction: %s", e)
                raise VerificationFailed(str(e))

        tx_hex = Web3.to_hex(tx_hash)
        logger.info("Submitted transaction %s", tx_hex)

        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.timeout)
        except TimeExhausted:
            logger.warning("No receipt for %s after %ss", tx_hex, self.timeout)
            raise Indeterminate(tx_hex)
        except (OSError, RequestException) as e:
            logger.warning("Lost connection while waiting for %s: %s", tx_hex, e)
            raise Indeterminate(tx_hex, f"Connection lost waiting for receipt of {tx_hex}: {e}")
        except (ValueError, Web3Exception) as e:
            logger.warning("Node error while waiting for %s: %s", tx_hex, e)
            raise Indeterminate(tx_hex, f"Node error waiting for receipt of {tx_hex}: {e}")

        if receipt["status"] != 1:
            logger.info("Transaction %s reverted", tx_hex)
            raise VerificationFailed(f"Transaction {tx_hex} reverted", tx_hash=tx_hex)
        logger.info("Transaction %s confirmed in block %s", tx_hex, receipt["blockNumber"])
        return receipt
