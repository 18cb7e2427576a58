import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from bazaar_food.config import settings

basic = HTTPBasic(auto_error=False, realm="Admin")


def require_admin(credentials: HTTPBasicCredentials | None = Depends(basic)) -> str:
    """
    HTTP Basic для /admin. Без ADMIN_USER/ADMIN_PASS вход закрыт полностью.
    """
    user = settings.ADMIN_USER.strip()
    password = settings.ADMIN_PASS.strip()

    ok = bool(user and password and credentials) and (
        secrets.compare_digest(credentials.username.encode(), user.encode())
        and secrets.compare_digest(credentials.password.encode(), password.encode())
    )
    if not ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Auth required",
            headers={"WWW-Authenticate": 'Basic realm="Admin"'},
        )
    return user
