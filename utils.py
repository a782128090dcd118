from typing import Optional
from fastapi.security import OAuth2PasswordBearer
from fastapi import Depends
from auth import decode_access_token
from errors import Unauthorized


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def get_current_token(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    if not token:
        raise Unauthorized("Unauthorized")
    return token


# Session of the signed-in wallet
def get_current_session(token: str = Depends(get_current_token)) -> dict:
    return decode_access_token(token)
