"""
业务异常
服务层抛出，由 main.py 中注册的异常处理器统一转换为 JSON 响应
"""


class OrderHubError(Exception):
    """业务异常基类"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(OrderHubError):
    """订单、产品、发票等不存在"""
    status_code = 404


class PermissionDeniedError(OrderHubError):
    """当前角色无权执行该操作"""
    status_code = 403


class RoutingNotAllowedError(OrderHubError):
    """角色与路由动作不匹配，或当前路由状态不允许流转"""
    status_code = 400


class ValidationError(OrderHubError):
    """请求数据不合法"""
    status_code = 400


class ConflictError(OrderHubError):
    """与现有数据冲突（如发票号并发争用）"""
    status_code = 409


class NotConfiguredError(OrderHubError):
    """外部服务未配置（如邮件服务缺少 API Key）"""
    status_code = 500


class EmailDeliveryError(OrderHubError):
    """邮件服务返回错误"""
    status_code = 500
