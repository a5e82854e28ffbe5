# platforms/save_endpoint.py

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import requests

from listing_generator.config.settings import HTTP_TIMEOUT
from listing_generator.core.errors import (
    IncompleteDataError,
    NetworkError,
    SaveError,
    ServerReportedError,
    ServerScriptError,
    ValidationError,
)
from listing_generator.core.messages import message
from listing_generator.core.product_schema import (
    ImageSlot,
    PersistencePayload,
    ProductDraft,
    SaveResult,
)

logger = logging.getLogger(__name__)


def _slot_url(slots: Sequence[ImageSlot], number: int) -> str:
    for slot in slots:
        if slot.slot == number:
            return slot.url or ""
    return ""


class PersistenceClient:
    """Posts finished products to the user-hosted save script."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = HTTP_TIMEOUT, language: str = "es"):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.language = language

    def build_payload(
        self,
        draft: Optional[ProductDraft],
        slots: Sequence[ImageSlot],
        category_id: int,
        stock_quantity: int,
        purchase_price: float = 0.0,
        unit: str = "UNI",
    ) -> PersistencePayload:
        """
        组装提交数据（每次保存都重新构建）。

        两个价格字段、两个图片字段总是一起提交，空图片位为 ""。

        Raises:
            IncompleteDataError: 没有草稿，或两个图片位都为空
        """
        url1 = _slot_url(slots, 1)
        url2 = _slot_url(slots, 2)
        if draft is None or (not url1 and not url2):
            raise IncompleteDataError(message("incomplete_data", self.language))

        return PersistencePayload(
            category_id=int(category_id),
            stock_quantity=int(stock_quantity),
            product_name=draft.product_name,
            description=draft.description,
            meta_description=draft.meta_description,
            tags=list(draft.tags),
            price=draft.price,
            purchase_price=float(purchase_price),
            unit=unit,
            currency=draft.currency,
            image_url1=url1,
            image_url2=url2,
        )

    def submit(self, payload: PersistencePayload, endpoint_url: str) -> SaveResult:
        """
        提交到保存接口。失败后可用同一个 payload 再次调用（手动重试）。

        Returns:
            SaveResult(ok=True, id=服务端返回的 id)

        Raises:
            NetworkError: 没有收到 HTTP 响应
            ServerScriptError: 5xx 且响应体为空（需要展示修复指南）
            ServerReportedError: 服务端明确返回失败
        """
        if not endpoint_url:
            raise ValidationError("The save endpoint URL is not configured.")

        body = payload.to_dict()
        logger.info("Saving %r to %s", payload.product_name, endpoint_url)
        try:
            r = self.session.post(endpoint_url, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Save request to %s failed: %s", endpoint_url, e)
            raise NetworkError(message("network_error", self.language)) from e

        text = r.text or ""
        if not r.ok:
            raise self._http_failure(r.status_code, text)

        try:
            result = json.loads(text)
        except ValueError:
            raise ServerReportedError(
                message("unexpected_response", self.language, body=text.strip()),
                status_code=r.status_code,
            )

        if isinstance(result, dict) and result.get("ok") is True:
            logger.info("Saved %r, id=%r", payload.product_name, result.get("id"))
            return SaveResult(ok=True, id=result.get("id"), message=message("saved", self.language))

        error = result.get("error") if isinstance(result, dict) else None
        raise ServerReportedError(error or message("save_failed", self.language), status_code=r.status_code)

    def _http_failure(self, status_code: int, text: str) -> SaveError:
        if not text.strip():
            if status_code >= 500:
                return ServerScriptError(message("script_failed", self.language))
            return ServerReportedError(message("server_error", self.language, status=status_code), status_code=status_code)

        try:
            error_json: Any = json.loads(text)
        except ValueError:
            return ServerReportedError(text.strip(), status_code=status_code)

        error = error_json.get("error") if isinstance(error_json, dict) else None
        return ServerReportedError(error or text.strip(), status_code=status_code)

    def save(
        self,
        draft: Optional[ProductDraft],
        slots: Sequence[ImageSlot],
        category_id: int,
        stock_quantity: int,
        purchase_price: float,
        unit: str,
        endpoint_url: str,
    ) -> SaveResult:
        payload = self.build_payload(draft, slots, category_id, stock_quantity, purchase_price, unit)
        return self.submit(payload, endpoint_url)
