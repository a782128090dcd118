import logging
from functools import lru_cache

from fastapi import FastAPI, Depends, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from eth_utils import ValidationError
from pymongo import MongoClient

import config
from admission import AdmissionController
from auth import login_with_wallet
from chain import ChainGateway
from errors import GatewayUnavailable, InvalidRequest, ServerError, VotingError
from models import *
from store import PollStore, UserStore, VoteStore
from tally import simulate_tally
from utils import get_current_session
from verifier import load_verifier

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Voting Forum",
    description="Identity-verified poll admission, poll management and vote tallies.",
    version="1.0.0"
)

# CORS middleware configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# MongoDB setup
client = MongoClient(config.MONGO_URI, serverSelectionTimeoutMS=5000)
db = client[config.MONGO_DB]

verifier = load_verifier()


# ===================== DEPENDENCIES =====================

def get_db():
    return db


def get_poll_store(database=Depends(get_db)) -> PollStore:
    return PollStore(database)


def get_user_store(database=Depends(get_db)) -> UserStore:
    return UserStore(database)


def get_vote_store(database=Depends(get_db)) -> VoteStore:
    return VoteStore(database)


@lru_cache()
def get_admission() -> AdmissionController:
    if not config.RPC_URL or not config.PRIVATE_KEY:
        raise ServerError("Relay not configured: RPC_URL and PRIVATE_KEY are required")
    try:
        gateway = ChainGateway(
            config.RPC_URL,
            config.PRIVATE_KEY,
            chain_id=config.CHAIN_ID,
            timeout=config.TX_TIMEOUT,
            fallback_gas_limit=config.FALLBACK_GAS_LIMIT,
            gas_margin=config.GAS_ESTIMATE_MARGIN,
        )
    except (ValueError, ValidationError):
        logger.error("PRIVATE_KEY is not a valid signing key")
        raise ServerError("Relay not configured: PRIVATE_KEY is not a valid signing key")
    return AdmissionController(gateway, config.VOTE_FACTORY_ADDRESS, config.GAS_PRICE_GWEI)


def get_verifier():
    if verifier is None:
        raise GatewayUnavailable("Identity verification is not configured", message="Identity verifier unavailable")
    return verifier


# ===================== ERROR HANDLERS =====================

@app.exception_handler(VotingError)
async def voting_error_handler(request: Request, exc: VotingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"][1:]) if errors else "body"
    error = InvalidRequest(f"Invalid field: {field or 'body'}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# ===================== HEALTH =====================

@app.get("/healthcheck")
def healthcheck(database=Depends(get_db)):
    try:
        database.users.find_one({}, {"_id": 1})
    except Exception as e:
        raise ServerError(f"Store query failed: {e}")
    return {"message": "Store connection successful"}


# ===================== VERIFICATION =====================

@app.post("/verify")
def verify(payload: VerifyRequest, admission: AdmissionController = Depends(get_admission)):
    result = admission.verify(payload.proof, payload.publicSignals)
    return {
        "status": "success",
        "result": True,
        "credentialSubject": {},
        **result.to_dict(),
    }


@app.get("/verify/challenge/{user_id}")
def verify_challenge(user_id: str, identity_verifier=Depends(get_verifier)):
    return identity_verifier.build_challenge(user_id)


@app.post("/token")
def login_for_access_token(payload: WalletLogin):
    token = login_with_wallet(payload.wallet_address, payload.message, payload.signature)
    return {"access_token": token, "token_type": "bearer"}


# ===================== POLLS =====================

@app.post("/poll", status_code=201)
def create_poll(payload: PollCreate, polls: PollStore = Depends(get_poll_store)):
    poll = polls.create(
        payload.title,
        payload.description,
        payload.options,
        payload.creator,
        payload.end_date,
    )
    return {"message": "Poll created successfully", "data": poll}


@app.get("/poll")
def list_polls(polls: PollStore = Depends(get_poll_store)):
    return polls.list()


@app.get("/poll/{poll_id}")
def get_poll(poll_id: str, polls: PollStore = Depends(get_poll_store)):
    return polls.get(poll_id)


@app.put("/poll/{poll_id}")
def update_poll(poll_id: str, payload: PollUpdate, polls: PollStore = Depends(get_poll_store)):
    return polls.update(poll_id, payload.title, payload.description, payload.options)


@app.delete("/poll/{poll_id}", status_code=204)
def delete_poll(poll_id: str, polls: PollStore = Depends(get_poll_store)):
    polls.delete(poll_id)
    return Response(status_code=204)


@app.get("/poll/{poll_id}/results", response_model=PollResults)
def get_poll_results(poll_id: str, polls: PollStore = Depends(get_poll_store)):
    poll = polls.get(poll_id)
    options = [option["text"] for option in poll["options"]]
    tally = simulate_tally(poll["id"], poll["title"], len(options))
    return PollResults(poll_id=poll["id"], options=options, **tally.model_dump())


# ===================== USERS =====================

@app.post("/user", status_code=201)
def create_user(payload: UserCreate, users: UserStore = Depends(get_user_store)):
    user = users.create(payload.wallet_address, payload.passport_id, payload.self_verified)
    return {"message": "User created successfully", "data": user}


@app.get("/user/addr")
def get_user_by_wallet(wallet_address: str = Query(None), users: UserStore = Depends(get_user_store)):
    return {"message": "User found", "data": users.get_by_wallet(wallet_address)}


@app.put("/user/verify")
def set_user_verified(payload: UserVerify, users: UserStore = Depends(get_user_store)):
    user = users.set_verified(payload.wallet_address, payload.self_verified)
    return {"message": "Verification status updated successfully", "data": user}


@app.get("/user/{user_id}")
def get_user(user_id: str, users: UserStore = Depends(get_user_store)):
    return users.get(user_id)


@app.put("/user/{user_id}")
def update_user(
        user_id: str,
        payload: UserUpdate,
        session: dict = Depends(get_current_session),
        users: UserStore = Depends(get_user_store)
):
    user = users.update(user_id, payload.model_dump(exclude_unset=True))
    logger.info("User %s updated by %s", user_id, session["sub"])
    return {"message": "Updated", "data": user}


@app.delete("/user/{user_id}")
def delete_user(
        user_id: str,
        session: dict = Depends(get_current_session),
        users: UserStore = Depends(get_user_store)
):
    users.delete(user_id)
    logger.info("User %s deleted by %s", user_id, session["sub"])
    return {"message": "Deleted"}


# ===================== OFF-CHAIN VOTE RECORDS =====================

@app.post("/votes", status_code=201)
def create_vote(payload: VoteCreate, votes: VoteStore = Depends(get_vote_store)):
    return {"message": "Vote created successfully", "data": votes.create(payload.wallet_address, payload.votes)}


@app.get("/votes/{vote_id}")
def get_vote(vote_id: str, votes: VoteStore = Depends(get_vote_store)):
    return votes.get(vote_id)


@app.put("/votes/{vote_id}")
def update_vote(vote_id: str, payload: VoteUpdate, votes: VoteStore = Depends(get_vote_store)):
    return {"message": "Vote updated", "data": votes.update(vote_id, payload.votes, payload.wallet_address)}


@app.delete("/votes/{vote_id}")
def delete_vote(vote_id: str, votes: VoteStore = Depends(get_vote_store)):
    votes.delete(vote_id)
    return {"message": "Vote deleted"}


# ===================== ON-CHAIN REGISTRY =====================

@app.get("/chain/voting-contracts")
def list_voting_contracts(admission: AdmissionController = Depends(get_admission)):
    return {"contracts": admission.voting_contracts()}


@app.post("/chain/voting-contracts", status_code=201)
def create_voting_contract(payload: VotingContractCreate, admission: AdmissionController = Depends(get_admission)):
    result = admission.create_voting_contract(
        payload.deadline,
        payload.optionCount,
        payload.allowMultipleChoices,
        payload.hasAgeConstraint,
        payload.minAge,
        payload.proof,
        payload.publicSignals,
    )
    return {"status": "success", "result": True, **result.to_dict()}


@app.get("/chain/voting-contracts/{address}")
def get_proposal(address: str, admission: AdmissionController = Depends(get_admission)):
    return admission.proposal(address)


@app.post("/chain/voting-contracts/{address}/vote")
def cast_chain_vote(address: str, payload: ChainVote, admission: AdmissionController = Depends(get_admission)):
    result = admission.vote(address, payload.options, payload.proof, payload.publicSignals)
    return {"status": "success", "result": True, **result.to_dict()}


@app.post("/chain/voting-contracts/{address}/power")
def voting_power(address: str, payload: VerifyRequest, admission: AdmissionController = Depends(get_admission)):
    return {"voting_power": admission.has_voting_power(address, payload.proof, payload.publicSignals)}


@app.get("/chain/blacklist/{nullifier}")
def get_blacklist_status(nullifier: str, admission: AdmissionController = Depends(get_admission)):
    return {"nullifier": nullifier, "blacklisted": admission.is_blacklisted(nullifier)}


@app.put("/chain/blacklist")
def set_blacklist(
        payload: BlacklistUpdate,
        session: dict = Depends(get_current_session),
        admission: AdmissionController = Depends(get_admission)
):
    logger.info("Blacklist change requested by %s", session["sub"])
    result = admission.set_blacklist(payload.nullifier, payload.status)
    return {"status": "success", **result.to_dict()}


@app.get("/chain/admins/{address}")
def get_admin_status(address: str, admission: AdmissionController = Depends(get_admission)):
    return {"address": address, "admin": admission.is_admin(address)}


@app.post("/chain/admins", status_code=201)
def add_admin(
        payload: AdminAdd,
        session: dict = Depends(get_current_session),
        admission: AdmissionController = Depends(get_admission)
):
    logger.info("Admin grant requested by %s", session["sub"])
    result = admission.add_admin(payload.address)
    return {"status": "success", **result.to_dict()}


@app.delete("/chain/admins/{address}")
def remove_admin(
        address: str,
        session: dict = Depends(get_current_session),
        admission: AdmissionController = Depends(get_admission)
):
    logger.info("Admin removal requested by %s", session["sub"])
    result = admission.remove_admin(address)
    return {"status": "success", **result.to_dict()}
