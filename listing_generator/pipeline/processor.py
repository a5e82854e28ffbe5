# pipeline/processor.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from listing_generator.config.settings import Settings
from listing_generator.core.errors import CategoryFetchError, ListingGeneratorError, SaveError
from listing_generator.core.product_schema import Category, PersistencePayload, ProductDraft, SaveResult
from listing_generator.core.remediation import guide_for
from listing_generator.pipeline.orchestrator import GenerationRequest, GenerationSession
from listing_generator.platforms.categories_endpoint import CategoryProvider
from listing_generator.platforms.save_endpoint import PersistenceClient

logger = logging.getLogger(__name__)


@dataclass
class ListingJob:
    """一次完整运行的输入（商品名 + 用户在表单里填写的字段）"""

    product_name: str
    category_id: int = 1
    stock_quantity: int = 10
    purchase_price: float = 0.0
    unit: Optional[str] = None
    save: bool = True


@dataclass
class ListingOutcome:
    draft: Optional[ProductDraft] = None
    payload: Optional[PersistencePayload] = None
    result: Optional[SaveResult] = None
    errors: List[str] = field(default_factory=list)
    remediation: Optional[str] = None


def load_categories(provider: CategoryProvider, settings: Settings) -> List[Category]:
    """分类加载失败不是致命错误：打印原因并返回空列表"""
    try:
        categories = provider.fetch_categories(settings.categories_url)
    except CategoryFetchError as e:
        print(f"⚠️  无法加载分类: {e.message}")
        guide = guide_for(e)
        if guide:
            print(guide)
        return []
    print(f"📂 已加载 {len(categories)} 个分类")
    return categories


async def run_listing(
    job: ListingJob,
    session: GenerationSession,
    persistence: PersistenceClient,
) -> ListingOutcome:
    """
    文本生成 -> 并行生成两张图片 -> 等待图片结束 -> 保存。

    文本生成失败会直接抛出；单张图片失败只记录在 outcome.errors 中；
    保存失败记录错误并保留 payload，便于用同一 payload 手动重试。
    """
    outcome = ListingOutcome()
    settings = session.settings

    print(f"🤖 生成商品详情: {job.product_name}")
    outcome.draft = await session.generate(GenerationRequest(job.product_name))
    print(f"✅ {session.success_message}")
    print(f"  名称: {outcome.draft.product_name}")
    print(f"  价格: {outcome.draft.currency} {outcome.draft.price}")
    print(f"  标签: {', '.join(outcome.draft.tags)}")

    print("🖼  等待图片生成...")
    await session.settle()
    for slot in session.slots.values():
        if slot.url:
            print(f"  ✅ 图片 {slot.slot}: {len(slot.url)} 字符")
        elif slot.error:
            print(f"  ❌ {slot.error}")
    outcome.errors.extend(session.errors())

    if not job.save:
        return outcome

    try:
        outcome.payload = persistence.build_payload(
            session.draft,
            list(session.slots.values()),
            job.category_id,
            job.stock_quantity,
            job.purchase_price,
            job.unit or settings.unit,
        )
        print(f"💾 保存到: {settings.save_url}")
        outcome.result = persistence.submit(outcome.payload, settings.save_url)
        print(f"✅ {outcome.result.message} (id={outcome.result.id})")
    except SaveError as e:
        logger.warning("Save failed: %s", e)
        print(f"❌ 保存失败: {e.message}")
        outcome.errors.append(e.message)
        outcome.remediation = guide_for(e)
    except ListingGeneratorError as e:
        print(f"❌ 保存失败: {e.message}")
        outcome.errors.append(e.message)

    return outcome


def retry_save(outcome: ListingOutcome, persistence: PersistenceClient, endpoint_url: str) -> SaveResult:
    """手动重试：原样重新提交上一次的 payload"""
    if outcome.payload is None:
        raise SaveError("Nothing to retry: no payload was built.")
    outcome.result = persistence.submit(outcome.payload, endpoint_url)
    return outcome.result
