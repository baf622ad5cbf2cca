"""Command line entry point: run one query and print the JSON payload."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import DEFAULT_MAX_RESULTS, MAX_RESULTS, load_settings
from .pipeline import handle_request


def render_report_md(payload: Dict[str, Any]) -> str:
    """Markdown report for one search payload."""
    lines = []
    lines.append(f"# Sources for: {payload['query']}")
    lines.append(f"_Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}_")
    lines.append(f"_Scope: {payload['scope']} | Source tier: {payload['source_tier']}_\n")

    if not payload["results"]:
        lines.append("No credible sources found.\n")

    for i, r in enumerate(payload["results"], 1):
        lines.append(f"## {i}. {r['title']}\n")
        lines.append(f"**URL:** {r['url']}")
        lines.append(f"**Publisher:** {r['publisher']}")
        lines.append(f"**Score:** {r['score_total']}/30 ({r['strength']})")
        lines.append("**Criteria:** " + ", ".join(f"{k} {v}" for k, v in r["scores"].items()))
        lines.append(f"**Citation:** {r['citation']}\n")
        for w in r["why"]:
            lines.append(f"- {w}")
        for note in r["stage_notes"]:
            lines.append(f"- _{note['stage']} ({note['status']})_: {note['detail']}")
        lines.append("\n---\n")

    failed = payload.get("debug_failed")
    if failed:
        lines.append("## Rejected\n")
        for r in failed:
            lines.append(f"- {r['url']}: failed {r['failed_stage']} ({r['failed_reason']})")

    return "\n".join(lines)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Find and rank credible sources for a free-text query"
    )
    p.add_argument("query", nargs="+", help="Search query")
    p.add_argument("--max", type=int, default=DEFAULT_MAX_RESULTS,
                   help=f"Maximum results (capped at {MAX_RESULTS})")
    p.add_argument("--scope", default="web", choices=["web", "wide", "strict"],
                   help="web=no host prefilter, wide=institutions+scholarly+publishers, strict=institutions only")
    p.add_argument("--debug", action="store_true", help="Include rejected candidates")
    p.add_argument("--out-json", default="", help="Also write the JSON payload here")
    p.add_argument("--out-md", default="", help="Write a Markdown report here")
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("charset_normalizer").setLevel(logging.WARNING)

    params = {
        "query": " ".join(args.query),
        "max": args.max,
        "scope": args.scope,
        "debug": "1" if args.debug else "",
    }
    status, payload = handle_request(params, load_settings())

    text = json.dumps(payload, ensure_ascii=False, indent=2)
    print(text)

    if status != 200:
        return 2 if status == 400 else 1

    if args.out_json:
        with open(args.out_json, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"\nWrote: {args.out_json}", file=sys.stderr)
    if args.out_md:
        with open(args.out_md, "w", encoding="utf-8") as f:
            f.write(render_report_md(payload))
        print(f"Wrote: {args.out_md}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
