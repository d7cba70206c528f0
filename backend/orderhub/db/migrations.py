"""
数据库版本迁移模块

在启动时自动检查并更新数据库结构，确保旧版本数据库文件可以继续使用。
同时补齐基础配置数据（如系统默认样品利润率）。

迁移策略：
1. 每次启动都检查所有必需的列，不依赖版本号
2. 自动补齐基础配置
3. 版本号用于追踪，但不作为迁移的唯一依据
"""

import logging
from typing import Optional
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings

logger = logging.getLogger(__name__)

# 当前数据库版本 - 每次有重要更新时递增
CURRENT_DB_VERSION = "1.3.0"

DEFAULT_SAMPLE_MARGIN_KEY = "default_sample_margin_percentage"


async def get_db_version(db: AsyncSession) -> Optional[str]:
    """获取数据库版本，如果没有版本表则返回 None"""
    try:
        result = await db.execute(text(
            "SELECT value FROM system_config WHERE key = 'db_version'"
        ))
        row = result.fetchone()
        return row[0] if row else None
    except Exception:
        return None


async def set_db_version(db: AsyncSession, version: str) -> None:
    """设置数据库版本"""
    try:
        await db.execute(text(
            "INSERT OR REPLACE INTO system_config (key, value) VALUES ('db_version', :version)"
        ), {"version": version})
        await db.commit()
    except Exception as e:
        logger.error(f"设置数据库版本失败: {e}")


async def ensure_system_config_table(db: AsyncSession) -> bool:
    """确保 system_config 表存在"""
    try:
        await db.execute(text("""
            CREATE TABLE IF NOT EXISTS system_config (
                key TEXT PRIMARY KEY,
                value TEXT,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """))
        await db.commit()
        return True
    except Exception as e:
        logger.error(f"创建 system_config 表失败: {e}")
        await db.rollback()
        return False


async def check_column_exists(db: AsyncSession, table: str, column: str) -> bool:
    """检查表中是否存在指定列"""
    try:
        result = await db.execute(text(f"PRAGMA table_info({table})"))
        columns = [row[1] for row in result.fetchall()]
        return column in columns
    except Exception:
        return False


async def check_table_exists(db: AsyncSession, table: str) -> bool:
    """检查表是否存在"""
    try:
        result = await db.execute(
            text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name"),
            {"name": table},
        )
        return result.fetchone() is not None
    except Exception:
        return False


async def add_column_if_not_exists(
    db: AsyncSession,
    table: str,
    column: str,
    column_type: str,
    default: Optional[str] = None
) -> bool:
    """
    如果列不存在则添加

    返回值:
        True: 成功添加了列
        False: 列已存在或添加失败
    """
    if not await check_table_exists(db, table):
        logger.debug(f"表 {table} 不存在，跳过添加列 {column}")
        return False

    if await check_column_exists(db, table, column):
        return False

    try:
        sql = f"ALTER TABLE {table} ADD COLUMN {column} {column_type}"
        if default is not None:
            sql += f" DEFAULT {default}"
        await db.execute(text(sql))
        await db.commit()
        logger.info(f"[+] 已添加列: {table}.{column}")
        return True
    except Exception as e:
        # 单列添加失败不应该影响其他列，回滚并继续
        logger.warning(f"添加列 {table}.{column} 失败（可能已存在）: {e}")
        await db.rollback()
        return False


# ========== 必需的数据库列定义 ==========
# 格式: (表名, 列名, 列类型, 默认值)
# 这里列出版本迭代中新增的列，老数据库升级时自动添加
REQUIRED_COLUMNS = [
    # ========== orders：样品流程 ==========
    ("orders", "client_sample_fee", "DECIMAL(12,2)", None),
    ("orders", "sample_workflow_status", "VARCHAR(30)", "'no_sample'"),
    ("orders", "sample_routed_to", "VARCHAR(20)", "'admin'"),
    ("orders", "sample_routed_at", "DATETIME", None),
    ("orders", "sample_routed_by", "INTEGER", None),

    # ========== order_products：软删除 ==========
    ("order_products", "deleted_at", "DATETIME", None),
    ("order_products", "deleted_by", "INTEGER", None),
    ("order_products", "deleted_by_name", "TEXT", None),
    ("order_products", "deletion_reason", "TEXT", None),

    # ========== order_products：生产时间线 ==========
    ("order_products", "production_days", "INTEGER", None),
    ("order_products", "estimated_ship_date", "DATE", None),

    # ========== clients ==========
    ("clients", "custom_sample_margin_percentage", "DECIMAL(6,2)", None),
]


async def ensure_all_columns(db: AsyncSession) -> dict:
    """
    确保所有必需的列都存在
    每次启动都会检查，不依赖版本号
    """
    result = {"added": 0, "columns_added": []}
    for table, column, column_type, default in REQUIRED_COLUMNS:
        if await add_column_if_not_exists(db, table, column, column_type, default):
            result["added"] += 1
            result["columns_added"].append(f"{table}.{column}")
    return result


async def ensure_sample_margin_config(db: AsyncSession) -> dict:
    """系统默认样品利润率不存在时写入兜底值"""
    result = {"action": "none"}
    try:
        row = (await db.execute(
            text("SELECT value FROM system_config WHERE key = :key"),
            {"key": DEFAULT_SAMPLE_MARGIN_KEY},
        )).fetchone()
        if row is None:
            await db.execute(
                text("INSERT INTO system_config (key, value) VALUES (:key, :value)"),
                {"key": DEFAULT_SAMPLE_MARGIN_KEY, "value": str(settings.DEFAULT_SAMPLE_MARGIN)},
            )
            await db.commit()
            result["action"] = "created"
    except Exception as e:
        logger.warning(f"写入默认样品利润率失败: {e}")
        await db.rollback()
        result["action"] = "failed"
    return result


async def run_migrations(db: AsyncSession) -> dict:
    """
    运行数据库迁移

    每次启动都检查所有必需列，不仅仅依赖版本号
    """
    result = {
        "old_version": None,
        "new_version": CURRENT_DB_VERSION,
        "columns_added": [],
        "errors": []
    }

    try:
        await ensure_system_config_table(db)

        current_version = await get_db_version(db)
        result["old_version"] = current_version

        logger.info(f"数据库版本检查: {current_version or '未知'} -> {CURRENT_DB_VERSION}")

        column_result = await ensure_all_columns(db)
        result["columns_added"] = column_result["columns_added"]
        if column_result["added"] > 0:
            logger.info(f"数据库结构更新: 添加了 {column_result['added']} 个列")
        else:
            logger.info("数据库结构完整，无需更新")

        result["sample_margin"] = await ensure_sample_margin_config(db)

        if current_version != CURRENT_DB_VERSION:
            await set_db_version(db, CURRENT_DB_VERSION)
            logger.info(f"数据库版本已更新为: {CURRENT_DB_VERSION}")

    except Exception as e:
        error_msg = f"数据库迁移出错: {e}"
        logger.error(error_msg)
        result["errors"].append(error_msg)

    return result
