from jose import JWTError, jwt
from datetime import datetime, timedelta
from eth_account import Account
from eth_account.messages import encode_defunct
from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from errors import Unauthorized


# Generate JWT token
def create_access_token(data: dict, secret_key: str = SECRET_KEY, algorithm: str = ALGORITHM):
    expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = data.copy()
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, secret_key, algorithm=algorithm)
    return encoded_jwt


# Decode JWT token
def decode_access_token(token: str, secret_key: str = SECRET_KEY, algorithm: str = ALGORITHM):
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        raise Unauthorized("Token is invalid or expired")
    if not payload.get("sub"):
        raise Unauthorized("Token has no subject")
    return payload


# Recover the wallet that signed a sign-in message
def recover_wallet(message: str, signature: str) -> str:
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception:
        raise Unauthorized("Invalid signature")


def login_with_wallet(wallet_address: str, message: str, signature: str) -> str:
    signer = recover_wallet(message, signature)
    if signer.lower() != (wallet_address or "").lower():
        raise Unauthorized("Signature does not match wallet address")
    return create_access_token({"sub": signer})
