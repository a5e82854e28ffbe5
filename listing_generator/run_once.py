# listing_generator/run_once.py

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from listing_generator.config.settings import (
    ASPECT_RATIOS,
    IMAGE_STYLES,
    LANGUAGES,
    TONES,
    Settings,
    commit_settings,
    load_settings,
)
from listing_generator.core.ai_client import AIClient
from listing_generator.core.errors import ListingGeneratorError, SaveError
from listing_generator.core.remediation import guide_for
from listing_generator.pipeline.orchestrator import GenerationSession
from listing_generator.pipeline.processor import ListingJob, load_categories, retry_save, run_listing
from listing_generator.platforms.categories_endpoint import CategoryProvider, category_choices
from listing_generator.platforms.openai_provider import OpenAIProvider
from listing_generator.platforms.save_endpoint import PersistenceClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="AI product listing generator")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    gen = subparsers.add_parser("generate", help="Generate a product and post it to the save endpoint")
    gen.add_argument("product_name", help="Product name")
    gen.add_argument("--category-id", type=int, default=1)
    gen.add_argument("--stock", type=int, default=10, help="Stock quantity")
    gen.add_argument("--purchase-price", type=float, default=0.0)
    gen.add_argument("--unit", help="Sales unit (default from settings)")
    gen.add_argument("--no-save", action="store_true", help="Only generate, do not post")

    st = subparsers.add_parser("settings", help="Show or change settings")
    st.add_argument("--api-key")
    st.add_argument("--save-url")
    st.add_argument("--categories-url")
    st.add_argument("--language", choices=LANGUAGES)
    st.add_argument("--tone", choices=TONES)
    st.add_argument("--temperature", type=float)
    st.add_argument("--image-style", choices=IMAGE_STYLES)
    st.add_argument("--aspect-ratio", choices=ASPECT_RATIOS)
    st.add_argument("--unit")

    subparsers.add_parser("categories", help="List categories from the categories endpoint")
    subparsers.add_parser("validate-key", help="Check the stored API key against the provider")
    return parser


def _mask(api_key: str) -> str:
    return api_key[:8] + "..." if len(api_key) > 8 else ("***" if api_key else "(未设置)")


def cmd_settings(args: argparse.Namespace, settings: Settings, ai_client: AIClient) -> int:
    changes = {
        "api_key": args.api_key,
        "save_url": args.save_url,
        "categories_url": args.categories_url,
        "language": args.language,
        "tone": args.tone,
        "temperature": args.temperature,
        "image_style": args.image_style,
        "aspect_ratio": args.aspect_ratio,
        "unit": args.unit,
    }
    changes = {k: v for k, v in changes.items() if v is not None}

    if changes:
        validate_key = None
        if "api_key" in changes:
            def validate_key(key: str) -> bool:
                return asyncio.run(ai_client.validate_credentials(key))
        settings = commit_settings(settings.copy(**changes), validate_key=validate_key)
        print("✅ 配置已保存")

    for name, value in settings.to_store().items():
        print(f"  {name}: {_mask(value) if name == 'api_key' else value}")
    return 0


def cmd_categories(settings: Settings) -> int:
    categories = load_categories(CategoryProvider(language=settings.language), settings)
    for cat_id, label in category_choices(categories):
        print(f"  [{cat_id}] {label}")
    return 0 if categories else 1


def cmd_validate_key(settings: Settings, ai_client: AIClient) -> int:
    ok = asyncio.run(ai_client.validate_credentials(settings.api_key))
    print("✅ API key 有效" if ok else "❌ API key 无效")
    return 0 if ok else 1


def cmd_generate(args: argparse.Namespace, settings: Settings, ai_client: AIClient) -> int:
    persistence = PersistenceClient(language=settings.language)
    if not args.no_save:
        categories = load_categories(CategoryProvider(language=settings.language), settings)
        if categories and args.category_id not in {cat.id for cat in categories}:
            print(f"⚠️  分类 {args.category_id} 不在分类列表中")

    job = ListingJob(
        product_name=args.product_name,
        category_id=args.category_id,
        stock_quantity=args.stock,
        purchase_price=args.purchase_price,
        unit=args.unit,
        save=not args.no_save,
    )
    session = GenerationSession(ai_client, settings)

    try:
        outcome = asyncio.run(run_listing(job, session, persistence))
    except ListingGeneratorError as e:
        print(f"❌ {session.error or e.message}")
        return 1

    if outcome.remediation:
        print(outcome.remediation)

    # 保存失败时允许用同一 payload 手动重试
    while job.save and outcome.result is None and outcome.payload is not None and sys.stdin.isatty():
        if input("🔁 重试保存? [y/N] ").strip().lower() != "y":
            break
        try:
            result = retry_save(outcome, persistence, settings.save_url)
            print(f"✅ {result.message} (id={result.id})")
        except SaveError as e:
            print(f"❌ 保存失败: {e.message}")
            guide = guide_for(e)
            if guide:
                print(guide)

    if job.save:
        return 0 if outcome.result is not None else 1
    return 0 if outcome.draft is not None else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    ai_client = AIClient(OpenAIProvider())

    try:
        if args.command == "settings":
            return cmd_settings(args, settings, ai_client)
        if args.command == "categories":
            return cmd_categories(settings)
        if args.command == "validate-key":
            return cmd_validate_key(settings, ai_client)
        return cmd_generate(args, settings, ai_client)
    except ListingGeneratorError as e:
        print(f"❌ {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
