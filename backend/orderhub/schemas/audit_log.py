"""操作日志 Schema"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    """日志响应"""
    id: int
    user_id: Optional[int]
    user_name: Optional[str]
    action_type: str
    target_type: str
    target_id: Optional[int]
    old_value: Optional[str]
    new_value: Optional[str]
    timestamp: datetime

    # 显示字段
    target_type_display: str

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    """日志列表响应"""
    data: List[AuditLogResponse]
    total: int
    page: int
    limit: int
