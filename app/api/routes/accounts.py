"""
云存储账号管理 API 路由
"""
import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_account_service, get_current_user
from app.api.schemas import AccountUpdate, DataResponse, ResponseBase
from app.services.account_service import AccountService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/accounts", tags=["账号管理"])


@router.get("")
async def list_accounts(
    user_id: str = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """获取账号列表"""
    accounts = await account_service.list_accounts(user_id)
    return {
        "success": True,
        "accounts": [account.to_dict() for account in accounts]
    }


@router.patch("/{account_id}", response_model=DataResponse)
async def rename_account(
    account_id: str,
    data: AccountUpdate,
    user_id: str = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """重命名账号"""
    account = await account_service.rename(user_id, account_id, data.name)
    return DataResponse(data=account.to_dict())


@router.delete("/{account_id}", response_model=ResponseBase)
async def disconnect_account(
    account_id: str,
    user_id: str = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """断开账号"""
    await account_service.disconnect(user_id, account_id)
    return ResponseBase(message="账号已断开")
