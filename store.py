"""Poll, user and vote records in MongoDB.

Each create, update and delete is a single driver call, so a record is
never partially written.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from bson.errors import InvalidId
from bson.objectid import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from errors import CreatorNotFound, InvalidRequest, NotFound, ServerError

logger = logging.getLogger(__name__)

DEFAULT_POLL_DURATION = timedelta(hours=24)
USER_UPDATE_FIELDS = ("wallet_address", "passport_id", "self_verified")


def utcnow() -> datetime:
    # BSON dates keep milliseconds only; trim so a read returns what was written.
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds") + "Z"


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 instant into naive UTC, millisecond precision."""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed.replace(microsecond=parsed.microsecond // 1000 * 1000)


def to_object_id(value: Any) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize_document(doc):
    """Convert MongoDB document to JSON-serializable format."""
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    for key, value in doc.items():
        if isinstance(value, datetime):
            doc[key] = isoformat(value)
    return doc


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _clean_options(options: Any) -> List[dict]:
    if not isinstance(options, list) or len(options) < 2:
        raise InvalidRequest("At least 2 options are required")
    cleaned = []
    for option in options:
        if not isinstance(option, dict) or _blank(option.get("text")):
            raise InvalidRequest("Each option must have a non-empty text field")
        item = {"text": option["text"].strip()}
        description = option.get("description")
        if description is not None:
            if not isinstance(description, str):
                raise InvalidRequest("Option description must be a string")
            item["description"] = description
        cleaned.append(item)
    return cleaned


def _validate_poll_fields(title: Any, description: Any, options: Any) -> dict:
    if _blank(title):
        raise InvalidRequest("Title is required")
    if _blank(description):
        raise InvalidRequest("Description is required")
    if not isinstance(options, list) or len(options) < 2:
        raise InvalidRequest("At least 2 options are required")
    return {"title": title.strip(), "description": description.strip()}


class _Collection:
    name = None

    def __init__(self, db):
        self.collection = db[self.name]

    def _find(self, id: str, label: str) -> dict:
        oid = to_object_id(id)
        doc = self._call(self.collection.find_one, {"_id": oid}) if oid else None
        if not doc:
            raise NotFound(f"{label} not found")
        return doc

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PyMongoError as e:
            logger.exception("%s store operation failed", self.name)
            raise ServerError(str(e))


class PollStore(_Collection):
    name = "polls"

    def __init__(self, db):
        super().__init__(db)
        self.users = UserStore(db)

    def create(self, title, description, options, creator, end_date=None) -> dict:
        fields = _validate_poll_fields(title, description, options)
        if _blank(creator):
            raise InvalidRequest("Creator ID is required")
        fields["options"] = _clean_options(options)

        now = utcnow()
        if end_date:
            if not isinstance(end_date, str):
                raise InvalidRequest("Invalid end date format")
            try:
                end = parse_datetime(end_date)
            except ValueError:
                raise InvalidRequest("Invalid end date format")
            if end <= now:
                raise InvalidRequest("End date must be in the future")
        else:
            end = now + DEFAULT_POLL_DURATION

        creator = creator.strip()
        if not self.users.exists(creator):
            raise CreatorNotFound()

        doc = dict(fields, creator=creator, end_date=end, created_at=now)
        result = self._call(self.collection.insert_one, doc)
        doc["_id"] = result.inserted_id
        logger.info("Created poll %s", result.inserted_id)
        return serialize_document(doc)

    def list(self) -> List[dict]:
        sort = [("created_at", DESCENDING), ("_id", DESCENDING)]
        return self._call(lambda: [serialize_document(doc) for doc in self.collection.find().sort(sort)])

    def get(self, id: str) -> dict:
        return serialize_document(self._find(id, "Poll"))

    def update(self, id: str, title, description, options) -> dict:
        fields = _validate_poll_fields(title, description, options)
        fields["options"] = _clean_options(options)
        oid = to_object_id(id)
        doc = None
        if oid:
            doc = self._call(
                self.collection.find_one_and_update,
                {"_id": oid},
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            )
        if not doc:
            raise NotFound("Poll not found")
        return serialize_document(doc)

    def delete(self, id: str):
        oid = to_object_id(id)
        result = self._call(self.collection.delete_one, {"_id": oid}) if oid else None
        if result is None or result.deleted_count == 0:
            raise NotFound("Poll not found")
        logger.info("Deleted poll %s", id)


class UserStore(_Collection):
    name = "users"

    def create(self, wallet_address, passport_id, self_verified=None) -> dict:
        if _blank(wallet_address) or _blank(passport_id):
            raise InvalidRequest("Missing required fields: wallet_address, passport_id")
        doc = {
            "wallet_address": wallet_address,
            "passport_id": passport_id,
            "self_verified": bool(self_verified) if self_verified is not None else False,
            "created_at": utcnow(),
        }
        result = self._call(self.collection.insert_one, doc)
        doc["_id"] = result.inserted_id
        return serialize_document(doc)

    def exists(self, id: str) -> bool:
        oid = to_object_id(id)
        return bool(oid and self._call(self.collection.find_one, {"_id": oid}, {"_id": 1}))

    def get(self, id: str) -> dict:
        return serialize_document(self._find(id, "User"))

    def get_by_wallet(self, wallet_address: str) -> dict:
        if _blank(wallet_address):
            raise InvalidRequest("Invalid or missing wallet address parameter")
        doc = self._call(self.collection.find_one, {"wallet_address": wallet_address})
        if not doc:
            raise NotFound("User not found")
        return serialize_document(doc)

    def update(self, id: str, fields: dict) -> dict:
        if fields.get("wallet_address") == "" or fields.get("passport_id") == "":
            raise InvalidRequest("wallet_address and passport_id cannot be empty")
        changes = {k: fields[k] for k in USER_UPDATE_FIELDS if fields.get(k) is not None}
        oid = to_object_id(id)
        doc = None
        if oid:
            if changes:
                doc = self._call(
                    self.collection.find_one_and_update,
                    {"_id": oid},
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                doc = self._call(self.collection.find_one, {"_id": oid})
        if not doc:
            raise NotFound("User not found")
        return serialize_document(doc)

    def set_verified(self, wallet_address: Any, self_verified: Any) -> dict:
        if _blank(wallet_address):
            raise InvalidRequest("Invalid or missing wallet address")
        if not isinstance(self_verified, bool):
            raise InvalidRequest("Invalid verification status: self_verified must be a boolean")
        doc = self._call(
            self.collection.find_one_and_update,
            {"wallet_address": wallet_address},
            {"$set": {"self_verified": self_verified}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFound("User not found")
        return serialize_document(doc)

    def delete(self, id: str):
        oid = to_object_id(id)
        result = self._call(self.collection.delete_one, {"_id": oid}) if oid else None
        if result is None or result.deleted_count == 0:
            raise NotFound("User not found")


class VoteStore(_Collection):
    name = "votes"

    def create(self, wallet_address: Any, votes: Any = None) -> dict:
        if _blank(wallet_address):
            raise InvalidRequest("Missing or invalid wallet_address")
        doc = {
            "wallet_address": wallet_address,
            "votes": votes if _is_count(votes) else 0,
            "created_at": utcnow(),
        }
        result = self._call(self.collection.insert_one, doc)
        doc["_id"] = result.inserted_id
        return serialize_document(doc)

    def get(self, id: str) -> dict:
        return serialize_document(self._find(id, "Vote"))

    def update(self, id: str, votes: Any = None, wallet_address: Any = None) -> dict:
        changes = {}
        if _is_count(votes):
            changes["votes"] = votes
        if isinstance(wallet_address, str):
            changes["wallet_address"] = wallet_address
        if not changes:
            raise InvalidRequest("No valid fields to update")
        oid = to_object_id(id)
        doc = None
        if oid:
            doc = self._call(
                self.collection.find_one_and_update,
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        if not doc:
            raise NotFound("Vote not found")
        return serialize_document(doc)

    def delete(self, id: str):
        oid = to_object_id(id)
        result = self._call(self.collection.delete_one, {"_id": oid}) if oid else None
        if result is None or result.deleted_count == 0:
            raise NotFound("Vote not found")


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
