from fastapi import APIRouter

from ..deps import store_configured
from ..schemas import HealthResponse
from ..utils import get_last_import


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return {
        "status": "ok",
        "store": "configured" if store_configured() else "missing",
        "last_import": get_last_import(),
    }
