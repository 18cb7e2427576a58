from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar_food.config import settings
from bazaar_food.db.deps import get_async_session

router = APIRouter()

REQUIRED_ENV = ("DATABASE_URL", "ADMIN_USER", "ADMIN_PASS")


@router.get("/health", summary="Health check")
async def health_check(db: AsyncSession = Depends(get_async_session)):
    """
    Health-check: заполненность обязательных переменных окружения и SELECT 1.
    """
    env = {key: bool(getattr(settings, key, "")) for key in REQUIRED_ENV}
    missing_env = [key for key, present in env.items() if not present]

    db_ok = False
    db_error = None
    try:
        await db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        db_error = str(e.__class__.__name__)

    ok = db_ok and not missing_env
    return JSONResponse(
        status_code=200 if ok else 503,
        content={
            "ok": ok,
            "env": env,
            "missingEnv": missing_env,
            "db": {"ok": db_ok, "error": db_error},
            "timestamp": datetime.now().isoformat(),
        },
    )
