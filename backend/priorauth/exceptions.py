"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / not_found / invalid_state / integration_error）
- code:        业务错误码（NO_VALID_FIELDS / PA_REQUEST_NOT_FOUND / ...）
- message:     人类可读的描述
- detail:      可选的附加信息（dict / list / None）
- http_status: HTTP 状态码

Service 层只需 raise，exception_handler 统一捕获并格式化响应。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)


class ValidationError(BaseAppException):
    """输入验证失败，400。detail['errors'] 按字段列出问题。"""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class NotFoundError(BaseAppException):
    """PA request / patient / prescription 不存在，或不属于当前 tenant。404。"""

    type = 'not_found'
    code = 'NOT_FOUND'
    http_status = 404


class InvalidStateTransition(BaseAppException):
    """
    状态前置条件不满足（例如对非 pending 的请求 submit）。400。

    detail 里总是带 currentStatus，调用方据此决定下一步。
    """

    type = 'invalid_state'
    code = 'INVALID_STATE_TRANSITION'
    http_status = 400

    def __init__(self, message, current_status, code=None, detail=None):
        self.current_status = current_status
        detail = dict(detail or {})
        detail.setdefault('currentStatus', current_status)
        super().__init__(message, code=code, detail=detail)


class IntegrationError(BaseAppException):
    """
    Payer adapter 调用失败（网络、超时、无法识别的响应）。500。

    抛出时记录保持调用前的状态，调用方可以安全重试。
    """

    type = 'integration_error'
    code = 'PAYER_INTEGRATION_ERROR'
    http_status = 500
