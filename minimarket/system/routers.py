from fastapi import APIRouter, Depends

from minimarket.auth.dependencies import require_admin
from minimarket.common.schemas import JSendResponse
from .schemas import ConnectionStatus, EnvironmentStatus
from .services import check_environment, probe_store_connection

router = APIRouter()


@router.get("/check-env", response_model=JSendResponse[EnvironmentStatus])
async def check_env(admin: dict = Depends(require_admin)):
    """
    Report which credentials and services are configured.
    """
    return JSendResponse.success(check_environment())


@router.get("/test-connection", response_model=JSendResponse[ConnectionStatus])
async def test_connection(admin: dict = Depends(require_admin)):
    """
    Check that the document store can be reached.
    """
    result = probe_store_connection()
    if not result.success:
        return JSendResponse.error(message=result.error, code=503, data=result)
    return JSendResponse.success(result)
