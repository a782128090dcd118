from pydantic import BaseModel
from typing import Any, Optional, List


# Poll Models
# Fields are optional so the store can name the first missing or invalid one.
class PollCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    options: Optional[List[Any]] = None
    creator: Optional[str] = None
    end_date: Optional[str] = None


class PollUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    options: Optional[List[Any]] = None


# User Models
class UserCreate(BaseModel):
    wallet_address: Optional[str] = None
    passport_id: Optional[str] = None
    self_verified: Optional[bool] = None


class UserUpdate(BaseModel):
    wallet_address: Optional[str] = None
    passport_id: Optional[str] = None
    self_verified: Optional[bool] = None


class UserVerify(BaseModel):
    wallet_address: Optional[str] = None
    self_verified: Any = None


class WalletLogin(BaseModel):
    wallet_address: str
    message: str
    signature: str


# Off-chain vote records
class VoteCreate(BaseModel):
    wallet_address: Optional[str] = None
    votes: Any = None


class VoteUpdate(BaseModel):
    wallet_address: Any = None
    votes: Any = None


# Proof relay Models
class VerifyRequest(BaseModel):
    proof: Optional[Any] = None
    publicSignals: Optional[List[Any]] = None


class VotingContractCreate(BaseModel):
    deadline: int
    optionCount: int
    allowMultipleChoices: bool = False
    hasAgeConstraint: bool = False
    minAge: int = 0
    proof: Optional[Any] = None
    publicSignals: Optional[List[Any]] = None


class ChainVote(BaseModel):
    options: List[int]
    proof: Optional[Any] = None
    publicSignals: Optional[List[Any]] = None


class BlacklistUpdate(BaseModel):
    nullifier: str
    status: bool


class AdminAdd(BaseModel):
    address: str


# Results
class Tally(BaseModel):
    total_votes: int
    option_votes: List[int]
    percentages: List[int]


class PollResults(Tally):
    poll_id: str
    options: List[str]
    simulated: bool = True
