"""
Business codes shared by every layer.

`BusinessCode` covers auth, validation and system failures; payment failures
live in `shared.codes.payment_codes.PaymentCode`. Both travel in the `code`
field of the response envelope.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    SUCCESS = 0

    # 参数错误 (1xxxx)
    PARAM_VALIDATION_ERROR = 10003

    # 业务错误 (2xxxx)
    TOKEN_EXPIRED = 20005
    NOT_FOUND = 20006

    # 认证/授权 (3xxxx)
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # 系统错误 (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003

    # 限流 (5xxxx)
    TOO_MANY_REQUESTS = 50001


__all__ = ["BusinessCode"]
