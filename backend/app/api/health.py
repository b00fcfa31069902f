from fastapi import APIRouter, Request

from app.storage.db import check_database

router = APIRouter()


@router.get("/health")
def health(request: Request) -> dict:
    return {"status": "ok", "database": check_database(request.app.state.engine)}
