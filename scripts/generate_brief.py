# scripts/generate_brief.py
"""
Generate a content brief stage by stage, optionally review it and write the article.

Usage:
  python scripts/generate_brief.py --keywords data/keywords.csv --country "United States" \
      --competitors data/competitors.json --target-words 1800 --strict --write-article out/article.md
"""
import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import List, Tuple

# --- Bootstrapping: make "briefsmith" importable when run from a checkout ------------
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from briefsmith.brief_review import BriefReviewer
from briefsmith.competitors import DataForSEOClient
from briefsmith.config import BRIEF_STORE_DIR, DEFAULT_LANGUAGE, DEFAULT_MODEL, LengthConstraints, ModelSettings, configure_logging
from briefsmith.content_validation import ContentValidationEngine
from briefsmith.errors import BriefsmithError, SectionError
from briefsmith.llm import SchemaGenerationClient
from briefsmith.models import CompetitorPage, GenerationContext, KeywordVolume, new_id
from briefsmith.orchestrator import BriefSession, StageOrchestrator
from briefsmith.stages import ALL_STAGES, STAGE_LABELS, has_stage_data
from briefsmith.store import JsonFileBriefStore
from briefsmith.writer import ArticleGenerator, StreamingSectionWriter

logger = logging.getLogger("generate_brief")


def load_keywords(path: str | None, inline: List[str]) -> List[KeywordVolume]:
    """CSV/TSV with keyword,volume columns (header optional), plus any `kw:volume` args."""
    out: List[KeywordVolume] = []
    if path:
        with open(path, newline="", encoding="utf-8") as f:
            for row in csv.reader(f, delimiter="\t" if path.endswith(".tsv") else ","):
                if not row or not row[0].strip():
                    continue
                vol = row[1].strip() if len(row) > 1 else "0"
                if not vol.isdigit():
                    continue  # header
                out.append(KeywordVolume(kw=row[0].strip(), volume=int(vol)))
    for item in inline:
        kw, _, vol = item.rpartition(":")
        if kw and vol.isdigit():
            out.append(KeywordVolume(kw=kw.strip(), volume=int(vol)))
        else:
            out.append(KeywordVolume(kw=item.strip(), volume=0))
    return out


def load_competitors(path: str) -> Tuple[List[CompetitorPage], List[str]]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return [CompetitorPage.model_validate(p) for p in data.get("competitors", [])], data.get("paa_questions", [])
    return [CompetitorPage.model_validate(p) for p in data], []


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Generate an SEO content brief (and optionally the article).")
    ap.add_argument("--keywords", help="CSV/TSV of keyword,volume")
    ap.add_argument("--kw", action="append", default=[], help="Extra keyword, optionally 'keyword:volume'")
    ap.add_argument("--competitors", help="JSON file of competitor pages (skips the SERP fetch)")
    ap.add_argument("--country", default="United States", help="SERP location when fetching competitors")
    ap.add_argument("--language", default=DEFAULT_LANGUAGE)
    ap.add_argument("--model", default=DEFAULT_MODEL)
    ap.add_argument("--thinking", choices=["high", "medium", "low", "minimal"],
                    help="Override the per-stage thinking level")
    ap.add_argument("--subject-info", default="")
    ap.add_argument("--brand-info", default="")
    ap.add_argument("--writer-instructions", default="")
    ap.add_argument("--target-words", type=int)
    ap.add_argument("--strict", action="store_true", help="Hold sections to +/-10%% of their budget")
    ap.add_argument("--brief-id", help="Resume an existing brief")
    ap.add_argument("--store-dir", default=BRIEF_STORE_DIR)
    ap.add_argument("--review", action="store_true", help="Score the brief and add E-E-A-T signals")
    ap.add_argument("--write-article", metavar="PATH", help="Write the article to PATH")
    ap.add_argument("--validate", action="store_true", help="Validate the written article against the brief")
    ap.add_argument("--log-level", default=None)
    return ap


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    keywords = load_keywords(args.keywords, args.kw)
    if not keywords:
        logger.error("No keywords given (use --keywords or --kw).")
        return 2

    try:
        if args.competitors:
            pages, paa = load_competitors(args.competitors)
        else:
            pages, paa = DataForSEOClient().competitor_pages(keywords, args.country, args.language)
    except (RuntimeError, BriefsmithError) as e:
        logger.error("Could not load competitor data: %s", e)
        return 1

    ctx = GenerationContext(
        competitor_pages=pages,
        available_keywords=keywords,
        paa_questions=paa,
        subject_info=args.subject_info,
        brand_info=args.brand_info,
        language=args.language,
        writer_instructions=args.writer_instructions,
        settings=ModelSettings(model=args.model, **({"thinking_level": args.thinking} if args.thinking else {})),
        length=LengthConstraints(global_target=args.target_words, strict_mode=args.strict),
    )

    client = SchemaGenerationClient()
    brief_id = args.brief_id or new_id()
    session = BriefSession(brief_id, StageOrchestrator(client), JsonFileBriefStore(args.store_dir), ctx)
    logger.info("Brief id: %s", brief_id)

    try:
        for stage in ALL_STAGES:
            if has_stage_data(session.brief, stage) and not session.is_stale(stage):
                logger.info("Stage %d (%s) already done, skipping", int(stage), STAGE_LABELS[stage])
                continue
            logger.info("Stage %d: %s", int(stage), STAGE_LABELS[stage])
            session.generate_stage(stage)

        if args.review:
            reviewed = BriefReviewer(client).review(session.brief, ctx, cancel_token=session.cancel_token)
            session.update_brief(validation=reviewed.validation, eeat_signals=reviewed.eeat_signals)
    except KeyboardInterrupt:
        session.cancel()
        logger.warning("Cancelled; completed stages are saved under %s", brief_id)
        return 130
    except BriefsmithError as e:
        logger.error("%s", e)
        return 1

    if not args.write_article:
        print(session.brief.model_dump_json(indent=2, exclude_none=True))
        return 0

    out = Path(args.write_article)
    out.parent.mkdir(parents=True, exist_ok=True)
    generator = ArticleGenerator(StreamingSectionWriter(client))
    try:
        article = generator.generate(
            session.brief, ctx,
            on_section=lambda i, n, h: logger.info("Writing section %d/%d: %s", i + 1, n, h),
            cancel_token=session.cancel_token,
        )
    except SectionError as e:
        out.write_text(e.partial_content, encoding="utf-8")
        logger.error("%s (partial article saved to %s)", e, out)
        return 1
    except BriefsmithError as e:
        logger.error("%s", e)
        return 1
    out.write_text(article, encoding="utf-8")
    logger.info("Article written to %s", out)

    if args.validate:
        result = ContentValidationEngine(client).validate(session.brief, article, ctx)
        print(result.model_dump_json(indent=2, by_alias=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
