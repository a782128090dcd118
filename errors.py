"""Error taxonomy shared by the relay, the stores and the HTTP layer.

Every error carries the HTTP status it surfaces as, so handlers in ``app.py``
can turn any of them into a JSON response without a lookup table.
"""
from typing import Optional


class VotingError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None):
        self.error = error or self.message
        if message is not None:
            self.message = message
        super().__init__(self.error)

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.error}


class InvalidRequest(VotingError):
    status_code = 400
    message = "Invalid request"


class NotFound(VotingError):
    status_code = 404
    message = "Not found"


class CreatorNotFound(InvalidRequest):
    def __init__(self, error: str = "Creator not found"):
        super().__init__(error)


class InvalidProofShape(InvalidRequest):
    message = "Invalid proof shape"


class VerificationFailed(VotingError):
    status_code = 400
    message = "Verification failed or date of birth not disclosed"
    reason = "proof invalid, nullifier blacklisted, or disclosure incomplete"

    def __init__(self, error: Optional[str] = None, tx_hash: Optional[str] = None):
        super().__init__(error or self.reason)
        self.tx_hash = tx_hash

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update({"status": "error", "result": False, "reason": self.reason})
        if self.tx_hash:
            body["tx_hash"] = self.tx_hash
        return body


class Indeterminate(VotingError):
    status_code = 504
    message = "Transaction outcome unknown"

    def __init__(self, tx_hash: str, error: Optional[str] = None):
        super().__init__(error or f"Timed out waiting for receipt of {tx_hash}")
        self.tx_hash = tx_hash

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update({"status": "pending", "result": None, "tx_hash": self.tx_hash})
        return body


class GatewayUnavailable(VotingError):
    status_code = 503
    message = "Chain gateway unavailable"


class InvalidContractAddress(VotingError):
    status_code = 500
    message = "Invalid contract address"


class Unauthorized(VotingError):
    status_code = 401
    message = "Unauthorized"


class ServerError(VotingError):
    status_code = 500
    message = "Server error"
