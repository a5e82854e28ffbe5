# pipeline/orchestrator.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from listing_generator.config.settings import Settings, check_choice
from listing_generator.core.ai_client import AIClient
from listing_generator.core.errors import (
    GenerationError,
    InvalidCredentialsError,
    ListingGeneratorError,
    MissingCredentialsError,
    QuotaExceededError,
    ValidationError,
)
from listing_generator.core.image_normalizer import normalize
from listing_generator.core.messages import message
from listing_generator.core.product_normalizer import clean_price, clean_tags, clean_text
from listing_generator.core.product_schema import DRAFT_WIRE_NAMES, SLOT_NUMBERS, ImageSlot, ProductDraft
from listing_generator.core.prompt_builder import CURRENCIES

logger = logging.getLogger(__name__)

Listener = Callable[[str, Optional[int]], None]

EDITABLE_FIELDS = {wire: attr for attr, wire in DRAFT_WIRE_NAMES.items()}
EDITABLE_FIELDS.update({attr: attr for attr in DRAFT_WIRE_NAMES})


class SessionState(Enum):
    IDLE = "idle"
    DETAILS_PENDING = "details_pending"
    DETAILS_READY = "details_ready"
    SETTLED = "settled"


@dataclass
class GenerationRequest:
    """One generate() call; unset options fall back to the session Settings."""

    product_name: str
    language: Optional[str] = None
    tone: Optional[str] = None
    temperature: Optional[float] = None
    image_style: Optional[str] = None
    aspect_ratio: Optional[str] = None

    def resolved(self, settings: Settings) -> "GenerationRequest":
        return GenerationRequest(
            product_name=self.product_name.strip(),
            language=self.language or settings.language,
            tone=self.tone or settings.tone,
            temperature=settings.temperature if self.temperature is None else self.temperature,
            image_style=self.image_style or settings.image_style,
            aspect_ratio=self.aspect_ratio or settings.aspect_ratio,
        )


class GenerationSession:
    """
    一次生成会话的状态机：

        IDLE -> DETAILS_PENDING -> DETAILS_READY (图片 1/2 各自进行) -> SETTLED

    文本生成成功后才会启动图片任务；两个图片任务互不等待，
    每个任务只写自己的 ImageSlot，错误也只记录在自己的 slot 上。
    """

    def __init__(
        self,
        ai_client: AIClient,
        settings: Settings,
        normalizer: Callable[[str], str] = normalize,
        listener: Optional[Listener] = None,
    ):
        self.ai_client = ai_client
        self.settings = settings
        self.normalizer = normalizer
        self.listener = listener

        self.state = SessionState.IDLE
        self.draft: Optional[ProductDraft] = None
        self.slots: Dict[int, ImageSlot] = {n: ImageSlot(n) for n in SLOT_NUMBERS}
        self.error: Optional[str] = None
        self.success_message: Optional[str] = None
        self.credentials_ready = bool(settings.api_key)

        self._request: Optional[GenerationRequest] = None
        self._tasks: Dict[int, asyncio.Task] = {}
        # 每次 _clear() 加一；等待文本结果期间若变化，说明会话已被 reset
        self._generation = 0

    # --- helpers ---

    @property
    def language(self) -> str:
        return self._request.language if self._request else self.settings.language

    def _notify(self, event: str, slot: Optional[int] = None) -> None:
        if self.listener is not None:
            self.listener(event, slot)

    def _cancel_tasks(self) -> None:
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        self._tasks = {}

    def _clear(self) -> None:
        # 旧任务持有旧的 ImageSlot 对象，写不到新会话里
        self._cancel_tasks()
        self._generation += 1
        self.draft = None
        self.slots = {n: ImageSlot(n) for n in SLOT_NUMBERS}
        self.error = None
        self.success_message = None

    def _maybe_settle(self) -> None:
        if self.state == SessionState.DETAILS_READY and not any(s.loading for s in self.slots.values()):
            self.state = SessionState.SETTLED
            self._notify("settled")

    def update_credentials(self, api_key: str) -> None:
        """Re-entry of a key after the provider rejected the previous one."""
        self.settings.api_key = (api_key or "").strip()
        self.credentials_ready = bool(self.settings.api_key)
        if self.credentials_ready:
            self.error = None

    def errors(self) -> List[str]:
        found = [self.error] if self.error else []
        found.extend(s.error for s in self.slots.values() if s.error)
        return found

    # --- generate ---

    async def generate(self, request: GenerationRequest) -> ProductDraft:
        """
        生成文本详情，然后在后台启动最多两个图片任务。

        返回时图片任务可能仍在进行，调用 settle() 等待它们结束。
        等待文本结果期间若调用了 reset()，结果被丢弃，会话保持 IDLE。

        Raises:
            ValidationError: 商品名为空或上一次文本生成尚未结束（不发起任何网络请求）
            InvalidCredentialsError: key 已失效，需要重新输入
            GenerationError 及其子类: 文本生成失败，整个会话中止
        """
        language = request.language or self.settings.language
        if not (request.product_name or "").strip():
            self.error = message("empty_product_name", language)
            raise ValidationError(self.error)

        if self.state == SessionState.DETAILS_PENDING:
            raise ValidationError(message("generation_busy", language))

        if not self.credentials_ready:
            self.error = message("credentials_required", language)
            raise InvalidCredentialsError(self.error)

        self._clear()
        generation = self._generation
        self._request = request.resolved(self.settings)
        req = self._request
        self.state = SessionState.DETAILS_PENDING
        self._notify("details")

        try:
            draft = await self.ai_client.generate_details(
                req.product_name, req.language, self.settings.api_key, req.tone, req.temperature
            )
        except ListingGeneratorError as e:
            if generation != self._generation:
                logger.info("Discarding details failure for %r after reset", req.product_name)
                raise
            self.state = SessionState.IDLE
            self.error = self._describe_details_error(e)
            if e.invalidates_credentials:
                self.credentials_ready = False
            logger.warning("Details generation failed for %r: %s", req.product_name, e)
            self._notify("details")
            raise

        if generation != self._generation:
            logger.info("Discarding details for %r after reset", req.product_name)
            return draft

        self.draft = draft
        self.success_message = message("details_ready", req.language)
        self.state = SessionState.DETAILS_READY
        self._notify("details")

        for n in SLOT_NUMBERS:
            prompt = draft.prompt_for(n)
            if prompt:
                # 先置 loading，保证 generate() 返回时状态已可见
                self.slots[n].loading = True
                self._tasks[n] = asyncio.create_task(self._background_branch(req, self.slots[n], prompt))

        self._maybe_settle()
        return draft

    def _describe_details_error(self, e: ListingGeneratorError) -> str:
        if isinstance(e, QuotaExceededError):
            return message("quota_error", self.language)
        if isinstance(e, MissingCredentialsError):
            return message("missing_key", self.language)
        if isinstance(e, InvalidCredentialsError):
            return message("permission_error", self.language)
        return e.message or message("generation_error", self.language)

    # --- image branches ---

    async def _image_branch(
        self, req: GenerationRequest, slot: ImageSlot, prompt: str, error_key: str
    ) -> Optional[ListingGeneratorError]:
        generation = self._generation
        slot.loading = True
        slot.error = None
        slot.source_prompt = prompt
        self._notify("image", slot.slot)
        failure: Optional[ListingGeneratorError] = None
        try:
            raw = await self.ai_client.generate_image(prompt, self.settings.api_key, req.image_style, req.aspect_ratio)
            url = await asyncio.to_thread(self.normalizer, raw)
        except ListingGeneratorError as e:
            failure = e
        except Exception as e:
            logger.exception("Image %d failed unexpectedly", slot.slot)
            failure = GenerationError(str(e))
        else:
            slot.url = url
        finally:
            slot.loading = False

        if failure is not None:
            slot.error = message(error_key, req.language, slot=slot.slot, error=failure.message or failure)
            logger.warning("Image %d failed: %s", slot.slot, failure)
        if generation == self._generation:
            self._notify("image", slot.slot)
            self._maybe_settle()
        return failure

    async def _background_branch(self, req: GenerationRequest, slot: ImageSlot, prompt: str) -> None:
        # 失败已记录在 slot.error 上，不影响另一张图和文本结果
        await self._image_branch(req, slot, prompt, "image_error")

    async def settle(self) -> None:
        """Wait until no image branch is pending. Branch errors stay on their slots."""
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._maybe_settle()

    async def regenerate_image(self, slot: int) -> str:
        """
        重新生成单张图片。

        成功时覆盖该 slot；失败时保留原图并在该 slot 上记录错误。
        不影响另一个 slot 和文本草稿。
        """
        self._check_slot(slot)
        language = self.language
        if self.draft is None:
            raise ValidationError(message("no_draft", language))
        prompt = self.draft.prompt_for(slot)
        if not prompt:
            raise ValidationError(message("no_prompt", language, slot=slot))
        target = self.slots[slot]
        if target.loading:
            raise ValidationError(message("slot_busy", language, slot=slot))

        self.success_message = None
        if self.state == SessionState.SETTLED:
            self.state = SessionState.DETAILS_READY
        failure = await self._image_branch(self._request, target, prompt, "regenerate_error")
        if failure is not None:
            raise failure
        return target.url

    def delete_image(self, slot: int) -> None:
        self._check_slot(slot)
        self.slots[slot].url = ""
        self._notify("image", slot)

    # --- draft edits ---

    def edit_field(self, field: str, value: Any) -> None:
        """Merge one user edit into the draft; ignored while there is no draft."""
        attr = EDITABLE_FIELDS.get(field)
        if attr is None:
            raise ValidationError(f"Unknown product field {field!r}")
        if self.draft is None:
            return
        if attr == "tags":
            if not isinstance(value, (list, str)):
                raise ValidationError(f"Tags must be a list or a comma-separated string, got {value!r}")
            # 用户编辑只去掉空标签，不去重
            value = clean_tags(value, max_count=None, dedupe=False)
        elif attr == "currency":
            value = check_choice("currency", clean_text(value), CURRENCIES)
        elif attr == "price":
            try:
                value = clean_price(value)
            except GenerationError as e:
                raise ValidationError(e.message) from e
        else:
            value = "" if value is None else str(value)
        setattr(self.draft, attr, value)
        self._notify("details")

    def reset(self) -> None:
        self._clear()
        self._request = None
        self.state = SessionState.IDLE
        self._notify("reset")

    @staticmethod
    def _check_slot(slot: int) -> None:
        if slot not in SLOT_NUMBERS:
            raise ValidationError(f"Image slot must be 1 or 2, got {slot!r}")
