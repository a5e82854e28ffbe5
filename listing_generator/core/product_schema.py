# core/product_schema.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ProductDraft 字段 -> JSON 键名
DRAFT_WIRE_NAMES: Dict[str, str] = {
    "product_name": "productName",
    "description": "description",
    "meta_description": "metaDescription",
    "tags": "tags",
    "price": "price",
    "currency": "currency",
    "image_prompt": "imagePrompt",
    "image_prompt2": "imagePrompt2",
}

SLOT_NUMBERS = (1, 2)


@dataclass
class ProductDraft:
    """生成但尚未保存的商品"""

    product_name: str
    description: str
    meta_description: str
    tags: List[str] = field(default_factory=list)
    price: float = 0.0
    currency: str = ""
    image_prompt: str = ""
    image_prompt2: str = ""

    raw_ai_json: Dict[str, Any] = field(default_factory=dict, repr=False)

    def prompt_for(self, slot: int) -> str:
        return self.image_prompt if slot == 1 else self.image_prompt2

    def to_dict(self) -> Dict[str, Any]:
        return {wire: getattr(self, attr) for attr, wire in DRAFT_WIRE_NAMES.items()}


@dataclass
class ImageSlot:
    """One of the two image positions (primary, alternate angle)."""

    slot: int
    url: str = ""
    loading: bool = False
    source_prompt: str = ""
    error: Optional[str] = None

    def clear(self) -> None:
        self.url = ""
        self.loading = False
        self.source_prompt = ""
        self.error = None


@dataclass
class Category:
    id: int
    parent_id: int
    level: int
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=int(data["id"]),
            parent_id=int(data.get("parentId") or 0),
            level=int(data.get("level") or 0),
            name=str(data["name"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "parentId": self.parent_id, "level": self.level, "name": self.name}


@dataclass
class PersistencePayload:
    """Flattened record posted to the save endpoint."""

    category_id: int
    stock_quantity: int
    product_name: str
    description: str
    meta_description: str
    tags: List[str]
    price: float
    purchase_price: float
    unit: str
    currency: str
    image_url1: str
    image_url2: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categoryId": self.category_id,
            "stockQuantity": self.stock_quantity,
            "productName": self.product_name,
            "description": self.description,
            "metaDescription": self.meta_description,
            "tags": list(self.tags),
            "price": self.price,
            "purchasePrice": self.purchase_price,
            "unit": self.unit,
            "currency": self.currency,
            "imageUrl1": self.image_url1,
            "imageUrl2": self.image_url2,
        }


@dataclass
class SaveResult:
    ok: bool
    id: Any = None
    message: str = ""
