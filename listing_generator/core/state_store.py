# core/state_store.py

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class StateStore:
    """
    用本地 JSON 文件保存配置与生成偏好，键名固定：
    {
        "api_key": "...",
        "product_api_url": "...",
        "categories_api_url": "...",
        "gen_tone": "persuasive",
        "gen_temperature": 0.8,
        "gen_imageStyle": "studio",
        "gen_aspectRatio": "1:1"
    }
    """

    def __init__(self, filepath: Path):
        self.filepath = Path(filepath)
        self._state: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if not self.filepath.exists():
            self._state = {}
            return
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # 文件损坏时回退到默认值，启动不应因此失败
            logger.warning("Could not read %s, using defaults: %s", self.filepath, e)
            data = {}
        self._state = data if isinstance(data, dict) else {}

    def _save(self) -> None:
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        with self.filepath.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, ensure_ascii=False, indent=2)

    # --- 对外方法 ---

    def all(self) -> Dict[str, Any]:
        return dict(self._state)

    def get(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default)

    def update(self, values: Dict[str, Any]) -> None:
        """合并写入并立即落盘"""
        self._state.update(values)
        self._save()
