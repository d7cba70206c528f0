from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "订单路由与开票系统"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    SQL_DEBUG: bool = False

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置
    SQLITE_DATABASE_URI: str = "sqlite:///./orderhub.db"

    # 受保护的页面路径（未登录访问时重定向到首页）
    PROTECTED_PATH_PREFIX: str = "/dashboard"
    SESSION_COOKIE_NAME: str = "orderhub_user"
    APP_BASE_URL: str = "http://localhost:3000"

    # 邮件服务（Resend），未配置时发送接口返回 500
    RESEND_API_KEY: Optional[str] = Field(default=None, description="Resend API Key")
    RESEND_FROM_EMAIL: str = "orders@example.com"
    RESEND_FROM_NAME: str = "OrderHub"
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_TIMEOUT_SECONDS: int = 15

    # 样品利润率兜底值（客户 → 系统配置 → 该值）
    DEFAULT_SAMPLE_MARGIN: float = 80.0

    # 发票
    INVOICE_NUMBER_MAX_RETRIES: int = 5
    INVOICE_DUE_DAYS: int = 30

    # 草稿订单自动清理
    DRAFT_CLEANUP_ENABLED: bool = True
    DRAFT_CLEANUP_DAYS: int = 15
    DRAFT_CLEANUP_HOUR: int = 3
    DRAFT_CLEANUP_MINUTE: int = 0
    CLEANUP_API_KEY: Optional[str] = None

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"加载配置: API_V1_STR={settings.API_V1_STR}, CORS={settings.BACKEND_CORS_ORIGINS}")
