# platforms/categories_endpoint.py

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

import requests

from listing_generator.config.settings import HTTP_TIMEOUT
from listing_generator.core.errors import CategoryFetchError
from listing_generator.core.messages import message
from listing_generator.core.product_schema import Category

logger = logging.getLogger(__name__)


class CategoryProvider:
    """Read-only category list from the user-hosted categories script."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = HTTP_TIMEOUT, language: str = "es"):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.language = language
        self._cache: Dict[str, List[Category]] = {}

    def fetch_categories(self, endpoint_url: str, refresh: bool = False) -> List[Category]:
        """
        GET 分类列表，期望 {"ok": true, "data": [...]}。

        成功结果按 URL 缓存；refresh=True 时重新请求。

        Raises:
            CategoryFetchError: 任何偏差；HTTP 500 时 show_remediation=True。
            调用方应视为非致命（只是无法选择分类）。
        """
        if not endpoint_url:
            raise CategoryFetchError(message("categories_url_missing", self.language))

        if not refresh and endpoint_url in self._cache:
            return list(self._cache[endpoint_url])

        try:
            r = self.session.get(endpoint_url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Categories request to %s failed: %s", endpoint_url, e)
            raise CategoryFetchError(message("network_error", self.language)) from e

        if not r.ok:
            fallback = message("server_error", self.language, status=r.status_code)
            try:
                error_data = r.json()
                error = error_data.get("error") if isinstance(error_data, dict) else None
            except ValueError:
                error = None
            raise CategoryFetchError(error or fallback, show_remediation=r.status_code == 500)

        try:
            result = r.json()
        except ValueError as e:
            raise CategoryFetchError(message("categories_unexpected", self.language)) from e

        if not isinstance(result, dict) or result.get("ok") is not True or not isinstance(result.get("data"), list):
            error = result.get("error") if isinstance(result, dict) else None
            raise CategoryFetchError(error or message("categories_unexpected", self.language))

        try:
            categories = [Category.from_dict(item) for item in result["data"]]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CategoryFetchError(f"{message('categories_unexpected', self.language)} ({e})") from e

        logger.info("Loaded %d categories from %s", len(categories), endpoint_url)
        self._cache[endpoint_url] = categories
        return list(categories)


def category_choices(categories: List[Category]) -> List[Tuple[int, str]]:
    """(id, 按 level 缩进的名称)，用于展示"""
    return [(cat.id, f"{'  ' * max(cat.level, 0)}{cat.name}") for cat in categories]
