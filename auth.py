from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from status import StatusCode
from utils.global_settings import settings

OPERATOR_ROLE = "operator"
USER_ROLE = "user"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login")


class CurrentUser(BaseModel):
    user_id: str
    user_name: str = "Anonymous"
    role: str = USER_ROLE

    @property
    def is_operator(self) -> bool:
        return self.role == OPERATOR_ROLE


def create_access_token(data: dict):
    """
    Create a new access token.

    Accounts live with the external identity provider; this is used by
    operators' tooling and by tests to mint tokens the service accepts.

    Args:
        data (dict): Claims to encode. Must include a 'sub' key holding the
                     user id, may include 'name' and 'role'.

    Returns:
        str: The encoded JWT as a string.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({'exp': expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt


def verify_access_token(token: str) -> CurrentUser:
    """
    Verify the access token and extract the caller identity.

    Args:
        token (str): The JWT access token to verify.

    Returns:
        CurrentUser: user id, display name and role from the token claims.

    Raises:
        HTTPException:
            - If the token is invalid, expired, or has no subject (401).
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise HTTPException(status_code=StatusCode.UNAUTHORIZED.value, detail="Could not validate credentials")
    user_id = payload.get('sub')
    if user_id is None:
        raise HTTPException(status_code=StatusCode.UNAUTHORIZED.value, detail="Could not validate credentials")
    return CurrentUser(
        user_id=str(user_id),
        user_name=payload.get('name') or "Anonymous",
        role=payload.get('role') or USER_ROLE,
    )


# dependency to get current user
async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    return verify_access_token(token)


async def require_operator(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    Only organization operators may create queues and call tickets.

    Raises:
        HTTPException:
            - If the caller is not an operator (403).
    """
    if not user.is_operator:
        raise HTTPException(status_code=StatusCode.FORBIDDEN.value, detail=StatusCode.FORBIDDEN.message)
    return user
