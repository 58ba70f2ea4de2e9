"""
BasePayerAdapter: 所有 payer 集成的抽象基类。

每个新 payer 只需：
1. 继承 BasePayerAdapter（走 HTTP 的继承 HttpPayerAdapter）
2. 实现 submit() 和 check_status()
3. 在 factory.py 的 _build_registry() 注册一行

Controller 完全不知道背后是哪家 payer。adapter 内部的失败（网络、超时、
无法识别的响应）一律直接抛出，由 controller 统一转成 IntegrationError。
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .types import NormalizedPARequest, StatusResult, SubmitResult

logger = logging.getLogger(__name__)


class PayerResponseError(Exception):
    """Payer 返回了 adapter 无法映射的内容。"""


class BasePayerAdapter(ABC):

    # 子类声明自己的 slug（与 factory 注册键、settings.PAYER_INTEGRATIONS 的键一致）
    slug: str = ""

    @abstractmethod
    def submit(self, request: NormalizedPARequest) -> SubmitResult:
        """
        把标准化的 PA request 提交给 payer。

        Returns:
            SubmitResult，status 为 submitted / approved / denied / needs_info / error 之一
        Raises:
            Exception: 任何失败都直接抛出
        """

    @abstractmethod
    def check_status(self, request_id: str, external_reference_id: str | None) -> StatusResult:
        """查询 payer 侧当前的决定。"""


class HttpPayerAdapter(BasePayerAdapter):
    """
    走 REST 的 payer 集成公共部分：session、超时、GET 重试、鉴权头。

    子类只负责字段映射：
      build_submit_payload()   NormalizedPARequest → payer JSON
      parse_submit_response()  payer JSON → SubmitResult
      parse_status_response()  payer JSON → StatusResult
    POST 不自动重试。
    """

    submit_path = "/prior-auth"
    status_path = "/prior-auth/{reference}"

    # payer 状态码 → 内部状态，子类覆盖
    STATUS_MAP: dict[str, str] = {}

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 30.0,
                 max_retries: int = 2, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or self._build_session(max_retries)

    @staticmethod
    def _build_session(max_retries: int) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=max_retries,
            backoff_factor=0.5,
            status_forcelist=(502, 503, 504),
            allowed_methods=frozenset({"GET"}),
        )
        session.mount("https://", HTTPAdapter(max_retries=retry))
        session.mount("http://", HTTPAdapter(max_retries=retry))
        return session

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def map_status(self, payer_status: Any) -> str:
        status = self.STATUS_MAP.get(str(payer_status or "").upper())
        if status is None:
            raise PayerResponseError(f"{self.slug}: unrecognized payer status {payer_status!r}")
        return status

    # ── 子类实现 ───────────────────────────────────────────────────────────

    @abstractmethod
    def build_submit_payload(self, request: NormalizedPARequest) -> dict[str, Any]:
        ...

    @abstractmethod
    def parse_submit_response(self, body: dict[str, Any]) -> SubmitResult:
        """不需要填 request_payload / response_payload，submit() 统一补上。"""

    @abstractmethod
    def parse_status_response(self, body: dict[str, Any], external_reference_id: str | None) -> StatusResult:
        ...

    # ── 对外统一入口 ───────────────────────────────────────────────────────

    def submit(self, request):
        payload = self.build_submit_payload(request)
        url = f"{self.base_url}{self.submit_path}"
        logger.info("[%s] POST %s for PA %s", self.slug, url, request.id)

        response = self.session.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        response.raise_for_status()
        body = response.json()

        result = self.parse_submit_response(body)
        result.request_payload = payload
        result.response_payload = body
        return result

    def check_status(self, request_id, external_reference_id):
        if not external_reference_id:
            raise PayerResponseError(f"{self.slug}: PA {request_id} has no external reference id")

        url = f"{self.base_url}{self.status_path.format(reference=external_reference_id)}"
        logger.info("[%s] GET %s for PA %s", self.slug, url, request_id)

        response = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        response.raise_for_status()
        body = response.json()

        result = self.parse_status_response(body, external_reference_id)
        result.response_payload = body
        return result
