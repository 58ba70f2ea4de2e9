from .base import BasePayerAdapter, HttpPayerAdapter, PayerResponseError
from .factory import get_payer_adapter, normalize_payer
from .types import NormalizedPARequest, StatusResult, SubmitResult

__all__ = [
    "BasePayerAdapter",
    "HttpPayerAdapter",
    "PayerResponseError",
    "NormalizedPARequest",
    "StatusResult",
    "SubmitResult",
    "get_payer_adapter",
    "normalize_payer",
]
