"""系统配置 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from decimal import Decimal


class SampleMarginResponse(BaseModel):
    key: str
    margin_percentage: Decimal
    source: str = "system"


class SampleMarginUpdate(BaseModel):
    margin_percentage: Decimal = Field(..., ge=0, le=1000, description="样品利润率（百分比）")


class ClientSampleMarginUpdate(BaseModel):
    margin_percentage: Optional[Decimal] = Field(None, ge=0, le=1000, description="为空表示使用系统默认值")


class ClientSampleMarginResponse(BaseModel):
    client_id: int
    custom_sample_margin_percentage: Optional[Decimal] = None
    effective_margin_percentage: Decimal


class CleanupResponse(BaseModel):
    success: bool
    deleted: int
    deleted_order_numbers: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    cutoff: str
