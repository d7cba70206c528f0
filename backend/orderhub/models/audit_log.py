"""
操作日志模型 - 只追加的审计记录
是系统唯一的持久化历史，没有事件回放能力
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from orderhub.db.base import Base


class AuditLog(Base):
    """操作日志 - 审计追踪

    记录以下类型的操作：
    - 产品路由（product_routed_<动作>）
    - 样品数据更新、样品路由
    - 产品删除、生产天数、发货日期
    - 发票创建、作废、发送
    """
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)

    # 操作人（冗余保存名称，便于历史查看）
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    user_name = Column(String(100), comment="操作人名称")

    action_type = Column(String(60), nullable=False, index=True, comment="操作类型")

    # order / order_product / invoice
    target_type = Column(String(30), nullable=False, index=True, comment="对象类型")
    target_id = Column(Integer, index=True, comment="对象ID")

    # 文本或 JSON 字符串
    old_value = Column(Text, comment="修改前")
    new_value = Column(Text, comment="修改后")

    timestamp = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action_type} {self.target_type}:{self.target_id}>"

    @property
    def target_type_display(self) -> str:
        """对象类型显示名称"""
        type_map = {
            "order": "订单",
            "order_product": "订单产品",
            "invoice": "发票",
            "client": "客户",
            "system_config": "系统配置",
        }
        return type_map.get(self.target_type, self.target_type)
